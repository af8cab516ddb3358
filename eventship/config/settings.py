import dataclasses
import logging
import os
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic.dataclasses import dataclass

from eventship.constants import (
    API_MAX_BATCH_BYTES,
    API_MAX_EVENT_BYTES,
    DEFAULT_BATCH_TIMEOUT,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MAX_CONCURRENT_BATCHES,
    DEFAULT_PENDING_WORK_CAPACITY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RESPONSE_QUEUE_SIZE,
    ENV_PREFIX,
)
from .log_codes import SETTINGS_ENV_INVALID, SETTINGS_FROM_ENV, SETTINGS_RESOLVED

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass
class TransmissionConfig:
    """
    Settings for a Transmission.

    Args:
        max_batch_size (int): Queue depth that triggers an aggregation pass.
        batch_timeout (float): Seconds between timed aggregation passes.
        max_concurrent_batches (int): Destination batches sent in parallel.
        pending_work_capacity (int): Capacity of the pending work queue.
        block_on_send (bool): Wait for queue room instead of reporting overflow.
        block_on_responses (bool): Wait for response queue room instead of dropping.
        response_queue_size (int): Capacity of the response queue.
        max_event_bytes (int): Largest encoded event that is sent.
        max_batch_bytes (int): Largest uncompressed request body.
        user_agent_addition (str): Token appended to the User-Agent header.
        disable_compression (bool): Send request bodies uncompressed.
        timeout (float): HTTP timeout in seconds.
    """

    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, ge=1)
    batch_timeout: float = Field(default=DEFAULT_BATCH_TIMEOUT, gt=0)
    max_concurrent_batches: int = Field(default=DEFAULT_MAX_CONCURRENT_BATCHES, ge=1)
    pending_work_capacity: int = Field(default=DEFAULT_PENDING_WORK_CAPACITY, ge=0)
    block_on_send: bool = False
    block_on_responses: bool = False
    response_queue_size: int = Field(default=DEFAULT_RESPONSE_QUEUE_SIZE, ge=0)
    max_event_bytes: int = Field(default=API_MAX_EVENT_BYTES, ge=1)
    max_batch_bytes: int = Field(default=API_MAX_BATCH_BYTES, ge=1)
    user_agent_addition: str = ""
    disable_compression: bool = False
    timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def _env_name(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"


def _parse_env_value(raw: str, field_type: Any, name: str) -> Any:
    """
    Convert a raw environment string to the field's type.

    Raises:
        ValueError: If the value cannot be converted.
    """
    if field_type in (bool, "bool"):
        value = raw.strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ValueError(f"Invalid boolean for {name}: {raw!r}")

    if field_type in (int, "int"):
        return int(raw.strip())

    if field_type in (float, "float"):
        return float(raw.strip())

    return raw


def _config_from_env(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Collect settings defined through EVENTSHIP_* environment variables.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    for config_field in dataclasses.fields(TransmissionConfig):
        name = _env_name(config_field.name)
        raw = environ.get(name)
        if raw is None:
            continue

        try:
            values[config_field.name] = _parse_env_value(raw, config_field.type, name)
        except ValueError:
            logger.error(SETTINGS_ENV_INVALID, extra={"variable": name, "value": raw})
            raise

        logger.debug(SETTINGS_FROM_ENV, extra={"variable": name})

    return values


def get_transmission_config(
    environ: Optional[Dict[str, str]] = None, **overrides: Any
) -> TransmissionConfig:
    """
    Resolve the transmission settings.

    Keyword overrides win over EVENTSHIP_* environment variables, which win over
    the defaults.

    Args:
        environ (Optional[Dict[str, str]]): Environment to read, defaults to os.environ.
        **overrides: Explicit setting values.

    Returns:
        TransmissionConfig: The resolved settings.

    Raises:
        ValueError: If an environment value cannot be parsed.
        pydantic.ValidationError: If a value is out of range.
    """
    values = _config_from_env(environ)
    values.update(overrides)

    config = TransmissionConfig(**values)
    logger.debug(
        SETTINGS_RESOLVED,
        extra={"sources": {k: "override" if k in overrides else "env" for k in values}},
    )
    return config
