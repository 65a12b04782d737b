"""Decoder configuration loaded from YAML

Settings are grouped into three sections (decoder, preamble, server). The
packaged decoder_config.yaml supplies the defaults; a user file only needs the
keys it wants to change.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields

DEFAULT_CONFIG_PATH = Path(__file__).parent / "decoder_config.yaml"

REPLAY_MODES = ("sequential", "indexed")


@dataclass
class DecoderConfig:
    max_payload_length: int = 1024 * 1024
    resync_mode: str = "byte"
    scan_window: int = 64 * 1024
    max_timestamp_regressions: Optional[int] = None
    replay: str = "sequential"

    def __post_init__(self):
        if self.replay not in REPLAY_MODES:
            raise ValueError(f"Unknown replay mode '{self.replay}', expected one of {REPLAY_MODES}")


@dataclass
class PreambleConfig:
    enabled: bool = True
    separator: str = "##"
    max_separator_lines: int = 10
    expected_git_hash: Optional[str] = None
    expected_object_hash: Optional[str] = None


@dataclass
class ServerConfig:
    host: str = "localhost"
    port: int = 5000
    frames_per_page: int = 100
    max_frames_per_request: int = 1000


@dataclass
class FramelogConfig:
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    preamble: PreambleConfig = field(default_factory=PreambleConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


_SECTIONS = {
    'decoder': DecoderConfig,
    'preamble': PreambleConfig,
    'server': ServerConfig,
}


def _read_yaml(config_path) -> Dict[str, Any]:
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        print(f"WARNING: Config file not found: {config_path}")
        return {}
    except yaml.YAMLError as e:
        print(f"ERROR: Failed to parse YAML config: {e}")
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        print(f"WARNING: Ignoring config file {config_path}: top level is not a mapping")
        return {}
    return data


def _merge(target, overrides):
    for section, values in overrides.items():
        if section not in _SECTIONS:
            print(f"WARNING: Unknown config section '{section}' ignored")
            continue
        if not isinstance(values, dict):
            print(f"WARNING: Config section '{section}' is not a mapping, ignored")
            continue
        target.setdefault(section, {})
        known = {f.name for f in fields(_SECTIONS[section])}
        for key, value in values.items():
            if key not in known:
                print(f"WARNING: Unknown setting '{section}.{key}' ignored")
                continue
            target[section][key] = value
    return target


def load_config(config_path=None) -> FramelogConfig:
    """
    Load settings, starting from the packaged defaults.

    Args:
        config_path: Optional path to a YAML file with overrides

    Returns:
        FramelogConfig
    """
    merged = _merge({}, _read_yaml(DEFAULT_CONFIG_PATH))
    if config_path is not None:
        merged = _merge(merged, _read_yaml(config_path))

    return FramelogConfig(**{
        name: cls(**merged.get(name, {}))
        for name, cls in _SECTIONS.items()
    })
