# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/config/loader.py

import os
from pathlib import Path
from typing import Optional

import yaml

from .models import DemoConfig

CONFIG_ENV = "MESHDEMO_CONFIG"
DEFAULT_CONFIG_FILE = "meshdemo.yaml"


def load_config(path: str | Path) -> DemoConfig:
    raw = Path(path).read_text()

    # expand environment variables like ${PROJECT_ID}
    expanded = os.path.expandvars(raw)

    data = yaml.safe_load(expanded) or {}
    return DemoConfig.model_validate(data)


def resolve_config(cwd: Optional[Path] = None) -> DemoConfig:
    """
    $MESHDEMO_CONFIG if set, else ./meshdemo.yaml if present, else the
    built-in demo defaults.
    """
    explicit = os.environ.get(CONFIG_ENV)
    if explicit:
        return load_config(explicit)

    candidate = (cwd or Path.cwd()) / DEFAULT_CONFIG_FILE
    if candidate.exists():
        return load_config(candidate)
    return DemoConfig()
