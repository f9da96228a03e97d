"""App configuration: LLM connection + pipeline knobs.

Stored as {data_dir}/config.json and merged over defaults on every read.
LLM defaults come from the environment (.env is loaded by the app):

    LLM_PROVIDER_URL, LLM_API_KEY, LLM_MODEL, LLM_PROVIDER_FORMAT,
    LLM_STRUCTURED_OUTPUTS ("true" to request JSON-object responses)

update_config() applies partial updates: each section is merged key by
key, unknown sections and keys are ignored.
"""

import json
import os
from pathlib import Path
from typing import Any

from writers_room.llm import HttpLLM
from writers_room.pipeline import PipelineSettings

_data_dir: Path | None = None


def init_config(data_dir: Path) -> None:
    global _data_dir
    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_config() before using config"
    return _data_dir


def _config_path() -> Path:
    return data_dir() / "config.json"


def _defaults() -> dict[str, Any]:
    return {
        "llm": {
            "provider_url": os.getenv("LLM_PROVIDER_URL", "http://localhost:8080"),
            "api_key": os.getenv("LLM_API_KEY", ""),
            "model": os.getenv("LLM_MODEL", ""),
            "provider_format": os.getenv("LLM_PROVIDER_FORMAT", "openai"),
            "structured_outputs": os.getenv("LLM_STRUCTURED_OUTPUTS", "") == "true",
            "timeout": 120.0,
        },
        "pipeline": PipelineSettings().model_dump(),
    }


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    for section, values in fields.items():
        if section in config and isinstance(values, dict):
            for key, value in values.items():
                if key in config[section]:
                    config[section][key] = value


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = _defaults()
    path = _config_path()
    if path.is_file():
        _merge(config, json.loads(path.read_text()))
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    Raises pydantic.ValidationError when the pipeline section is invalid;
    nothing is written in that case.
    """
    config = get_config()
    _merge(config, fields)
    PipelineSettings.model_validate(config["pipeline"])
    _config_path().write_text(json.dumps(config, indent=2))
    return config


def pipeline_settings(config: dict[str, Any]) -> PipelineSettings:
    return PipelineSettings.model_validate(config["pipeline"])


def build_llm(config: dict[str, Any]) -> HttpLLM:
    llm = config["llm"]
    return HttpLLM(
        provider_url=llm["provider_url"],
        api_key=llm["api_key"],
        provider_format=llm["provider_format"],
        model=llm["model"],
        structured_outputs=llm["structured_outputs"],
        timeout=llm["timeout"],
    )
