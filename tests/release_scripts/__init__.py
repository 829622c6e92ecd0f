#!/usr/bin/env python3
# file: tests/release_scripts/__init__.py
# version: 1.0.0
# guid: 5c7a1e3d-2b8f-4d6a-9e0c-4f2b7d9a1c35

"""Test package configuration for release helper scripts."""

from __future__ import annotations

from pathlib import Path
import sys

SCRIPTS_PATH = Path(__file__).resolve().parents[2] / "scripts"
if str(SCRIPTS_PATH) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_PATH))
