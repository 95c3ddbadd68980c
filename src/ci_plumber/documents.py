"""
Loading and dumping pipeline options documents.

Documents are accepted as already-decoded mappings or as JSON or YAML text.
Anything that does not decode into the expected shape raises
``MalformedDocument``; a bad duration anywhere in the document raises the
original ``MalformedDuration`` instead, so callers always see the raw
duration input.
"""

import json
from pathlib import Path
from typing import Any, Literal, Mapping, TypeVar, Union

import yaml
from pydantic import BaseModel, ValidationError
from sanic.log import logger

from ci_plumber.config import Config
from ci_plumber.exceptions import MalformedDocument, MalformedDuration
from ci_plumber.metrics import track_document_load
from ci_plumber.models import (
    DecorationConfig,
    PipelineOptions,
    PipelineOptionsList,
    PipelineOptionsSpec,
)
from ci_plumber.validation import get_validator, validate_decoration

Format = Literal["json", "yaml"]
Document = Union[str, bytes, Mapping[str, Any]]

M = TypeVar("M", bound=BaseModel)

_SUFFIXES: dict[str, Format] = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def _detect_format(text: Union[str, bytes]) -> Format:
    opening = ("{", "[") if isinstance(text, str) else (b"{", b"[")
    if text.lstrip().startswith(opening):
        return "json"
    return "yaml"


def _decode(data: Document, fmt: Format | None) -> tuple[Any, str]:
    if isinstance(data, Mapping):
        return data, "mapping"

    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedDocument(f"document is not valid UTF-8: {e}") from e

    if fmt is None:
        fmt = _detect_format(data)

    if fmt == "json":
        try:
            return json.loads(data), fmt
        except json.JSONDecodeError as e:
            raise MalformedDocument(f"invalid JSON document: {e}") from e

    try:
        return yaml.safe_load(data), fmt
    except yaml.YAMLError as e:
        raise MalformedDocument(f"invalid YAML document: {e}") from e


def _validate(model: type[M], payload: Any) -> M:
    if not isinstance(payload, Mapping):
        raise MalformedDocument(
            f"expected a mapping for {model.__name__}, got {type(payload).__name__}"
        )

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        for error in e.errors():
            cause = error.get("ctx", {}).get("error")
            if isinstance(cause, MalformedDuration):
                raise cause from e
        raise MalformedDocument(f"invalid {model.__name__} document: {e}") from e


def apply_config(spec: PipelineOptionsSpec, config: Config) -> PipelineOptionsSpec:
    """
    Merge the configured default decoration into a spec and validate it.

    Raises:
        InvalidDecorationConfig: If the configured validator rejects the
            merged decoration config
    """
    decoration = DecorationConfig.merge(
        spec.decoration_config, config.default_decoration()
    )
    if decoration is None:
        return spec

    validate_decoration(decoration, get_validator(config.DECORATION_VALIDATOR))
    return spec.model_copy(update={"decoration_config": decoration})


def _load(
    model: type[M], data: Document, fmt: Format | None, config: Config | None
) -> M:
    document_type = model.__name__
    if isinstance(data, Mapping):
        source = "mapping"
    else:
        fmt = fmt or _detect_format(data)
        source = fmt

    with track_document_load(document_type, source):
        payload, _ = _decode(data, fmt)
        document = _validate(model, payload)

        if config is not None:
            if isinstance(document, PipelineOptionsSpec):
                document = apply_config(document, config)
            elif isinstance(document, PipelineOptions):
                document = document.model_copy(
                    update={"spec": apply_config(document.spec, config)}
                )
            elif isinstance(document, PipelineOptionsList):
                items = tuple(
                    item.model_copy(update={"spec": apply_config(item.spec, config)})
                    for item in document.items
                )
                document = document.model_copy(update={"items": items})

    logger.debug("Loaded %s from %s document", document_type, source)
    return document


def load_pipeline_options(
    data: Document, *, fmt: Format | None = None, config: Config | None = None
) -> PipelineOptions:
    """
    Load a PipelineOptions document.

    Args:
        data: A decoded mapping, or JSON or YAML text
        fmt: The text format; guessed from the first character if not given
        config: When given, default decoration is merged in and validated

    Returns:
        The loaded options

    Raises:
        MalformedDocument: If the document does not parse into PipelineOptions
        MalformedDuration: If a timeout or grace period is malformed
    """
    return _load(PipelineOptions, data, fmt, config)


def load_pipeline_options_spec(
    data: Document, *, fmt: Format | None = None, config: Config | None = None
) -> PipelineOptionsSpec:
    return _load(PipelineOptionsSpec, data, fmt, config)


def load_pipeline_options_list(
    data: Document, *, fmt: Format | None = None, config: Config | None = None
) -> PipelineOptionsList:
    return _load(PipelineOptionsList, data, fmt, config)


def load_pipeline_options_file(
    path: Union[str, Path], *, config: Config | None = None
) -> PipelineOptions:
    path = Path(path)
    logger.debug("Reading pipeline options from %s", path)
    return _load(
        PipelineOptions,
        path.read_bytes(),
        _SUFFIXES.get(path.suffix.lower()),
        config,
    )


def dump_document(document: BaseModel, fmt: Format = "json") -> str:
    """
    Serialize a record to its wire form.

    Empty fields are left out and durations are always written as duration
    strings.
    """
    if fmt == "json":
        return document.model_dump_json(by_alias=True, exclude_defaults=True)

    payload = document.model_dump(mode="json", by_alias=True, exclude_defaults=True)
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)


def dump_pipeline_options(options: PipelineOptions, fmt: Format = "json") -> str:
    return dump_document(options, fmt)
