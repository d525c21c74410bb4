"""Application configuration utilities for eapdf."""
from __future__ import annotations

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict


DEFAULT_CONFIG_LOCATIONS = (
    Path("eapdf.ini"),
    Path("config/eapdf.ini"),
)

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"

DEFAULT_HASH_ALGORITHM = "SHA256"
DEFAULT_XSLT_FO = RESOURCES_DIR / "eaxs_to_fo.xsl"
DEFAULT_XSLT_XMP = RESOURCES_DIR / "eaxs_to_xmp.xsl"
DEFAULT_XSLT_ROOT_XMP = RESOURCES_DIR / "eaxs_to_root_xmp.xsl"
EAXS_SCHEMA = RESOURCES_DIR / "eaxs_schema.xsd"

BASE_SCRIPT = "Latn"


@dataclass(frozen=True)
class FontSet:
    serif: str
    sans: str
    mono: str


def default_script_fonts() -> Dict[str, FontSet]:
    return {BASE_SCRIPT: FontSet(serif="serif", sans="sans-serif", mono="monospace")}


@dataclass
class AppConfig:
    log_level: str = "INFO"
    structured_logging: bool = False
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    debug: bool = False
    xslt_fo_path: Path = DEFAULT_XSLT_FO
    xslt_xmp_path: Path = DEFAULT_XSLT_XMP
    xslt_root_xmp_path: Path = DEFAULT_XSLT_ROOT_XMP
    fop_command: str = "fop"
    script_fonts: Dict[str, FontSet] = field(default_factory=default_script_fonts)
    config_source: Path | None = None


def _load_config_file(config_path: Path | None) -> Dict[str, Any]:
    if config_path is None:
        for candidate in DEFAULT_CONFIG_LOCATIONS:
            if candidate.exists():
                config_path = candidate
                break
    if config_path is None or not config_path.exists():
        return {}

    parser = configparser.ConfigParser()
    parser.read(config_path)
    data: Dict[str, Any] = {"__path__": config_path}
    if parser.has_section("logging"):
        data["log_level"] = parser.get("logging", "level", fallback=None)
        structured = parser.get("logging", "structured", fallback=None)
        if structured is not None:
            data["structured_logging"] = parser.getboolean("logging", "structured", fallback=False)
    if parser.has_section("eaxs"):
        data["hash_algorithm"] = parser.get("eaxs", "hash_algorithm", fallback=None)
    if parser.has_section("pdf"):
        if parser.get("pdf", "debug", fallback=None) is not None:
            data["debug"] = parser.getboolean("pdf", "debug", fallback=False)
        for key in ("xslt_fo", "xslt_xmp", "xslt_root_xmp", "fop_command"):
            data[key] = parser.get("pdf", key, fallback=None)
    fonts: Dict[str, FontSet] = {}
    for section in parser.sections():
        if not section.startswith("fonts:"):
            continue
        script = section.split(":", 1)[1].strip()
        fonts[script] = FontSet(
            serif=parser.get(section, "serif", fallback="serif"),
            sans=parser.get(section, "sans", fallback="sans-serif"),
            mono=parser.get(section, "mono", fallback="monospace"),
        )
    if fonts:
        data["script_fonts"] = fonts
    return data


def _normalize_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return None


def _resolve_bool(env_name: str, config_data: Dict[str, Any], key: str) -> bool:
    env_value = _normalize_bool(os.getenv(env_name))
    if env_value is None:
        return bool(config_data.get(key, False))
    return env_value


def load_settings(
    hash_algorithm: str | None = None,
    *,
    debug: bool | None = None,
    fop_command: str | None = None,
) -> AppConfig:
    """Resolve application configuration from config files, env vars, and overrides."""
    config_file_env = os.getenv("EAPDF_CONFIG_FILE")
    config_data = _load_config_file(Path(config_file_env)) if config_file_env else _load_config_file(None)

    log_level = (
        os.getenv("EAPDF_LOG_LEVEL")
        or config_data.get("log_level")
        or "INFO"
    )
    resolved_hash = (
        hash_algorithm
        or os.getenv("EAPDF_HASH_ALGORITHM")
        or config_data.get("hash_algorithm")
        or DEFAULT_HASH_ALGORITHM
    )
    resolved_debug = debug if debug is not None else _resolve_bool("EAPDF_DEBUG", config_data, "debug")
    resolved_fop = fop_command or os.getenv("EAPDF_FOP_COMMAND") or config_data.get("fop_command") or "fop"

    script_fonts = default_script_fonts()
    script_fonts.update(config_data.get("script_fonts", {}))

    return AppConfig(
        log_level=log_level.upper(),
        structured_logging=_resolve_bool("EAPDF_STRUCTURED_LOGGING", config_data, "structured_logging"),
        hash_algorithm=resolved_hash.upper(),
        debug=resolved_debug,
        xslt_fo_path=Path(config_data.get("xslt_fo") or DEFAULT_XSLT_FO),
        xslt_xmp_path=Path(config_data.get("xslt_xmp") or DEFAULT_XSLT_XMP),
        xslt_root_xmp_path=Path(config_data.get("xslt_root_xmp") or DEFAULT_XSLT_ROOT_XMP),
        fop_command=resolved_fop,
        script_fonts=script_fonts,
        config_source=config_data.get("__path__") if config_data else None,
    )
