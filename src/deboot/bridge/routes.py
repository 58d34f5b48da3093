"""Static routing tables: device events to topics, command topics to actions."""

import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from deboot.bridge.errors import CommandValidationFailure, MalformedPayload

logger = logging.getLogger(__name__)

Transform = Callable[[Any], Iterable[tuple[str, str]]]


@dataclass(frozen=True)
class EventMapping:
    """Translates a named device event into publications.

    Attributes:
        name: Event name emitted by the device
        trigger: Action that makes the device emit the event
        topic: Topic suffix below ``<root>/<device_id>``
        transform: Optional fan-out producing ``(sub_key, payload)`` pairs,
            each published at ``<topic>/<sub_key>``
    """

    name: str
    trigger: str
    topic: str
    transform: Optional[Transform] = None


@dataclass(frozen=True)
class CommandSpec:
    """Translates an inbound command topic and payload into a device action.

    Attributes:
        name: Final segment of ``<root>/<device_id>/cmd/<name>``
        action: Device action to run
        required_fields: JSON object fields that must be present and non-empty.
            Commands without required fields ignore the payload.
        args: Builds the action's extra arguments from the parsed payload
    """

    name: str
    action: str
    required_fields: tuple[str, ...] = ()
    args: Callable[[dict[str, Any]], tuple[Any, ...]] = lambda options: ()

    def parse(self, payload: Union[bytes, str]) -> tuple[Any, ...]:
        """Validate ``payload`` and return the action arguments.

        Raises:
            MalformedPayload: If the payload is not a JSON object
            CommandValidationFailure: If a required field is missing, null or empty
        """
        if not self.required_fields:
            return ()

        try:
            if isinstance(payload, bytes):
                payload = payload.decode("utf-8")
            options = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedPayload(self.name, f"payload is not valid JSON ({e})") from e

        if not isinstance(options, dict):
            raise MalformedPayload(self.name, "payload must be a JSON object")

        missing = [f for f in self.required_fields if options.get(f) in (None, "")]
        if missing:
            raise CommandValidationFailure(
                self.name, f"missing options: {', '.join(missing)}"
            )

        return self.args(options)


def format_result(result: Any) -> str:
    """Render an event result as an MQTT payload string."""
    if isinstance(result, str):
        return result
    if isinstance(result, bool):
        return "true" if result else "false"
    if result is None:
        return "null"
    if isinstance(result, (dict, list, tuple)):
        return json.dumps(result)
    return str(result)


def split_clean_logs(result: Any) -> Iterable[tuple[str, str]]:
    """One publication per clean log entry, keyed by the entry's ``id``.

    Entries without an ``id`` are logged and skipped.
    """
    for entry in result or []:
        try:
            key = str(entry["id"])
            payload = json.dumps(entry)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping clean log entry {entry!r}: {e!r}")
            continue
        yield key, payload


def split_map_area(result: Any) -> Iterable[tuple[str, str]]:
    """One publication per map area, keyed by ``mapSpotAreaID``."""
    yield str(result["mapSpotAreaID"]), json.dumps(result)


EVENT_MAPPINGS: tuple[EventMapping, ...] = (
    EventMapping("ChargeState", "chargestate", "chargestate"),
    EventMapping("BatteryInfo", "batterystate", "batterystate"),
    EventMapping("CleanReport", "cleanstate", "cleanstate"),
    EventMapping("CleanLog", "getlogapicleanlogs", "cleanlogs", split_clean_logs),
    EventMapping("DeebotPosition", "getposition", "position"),
    EventMapping("MapSpotAreaInfo", "getMapSet", "mapareas", split_map_area),
)

COMMAND_SPECS: tuple[CommandSpec, ...] = (
    CommandSpec("clean", "clean"),
    CommandSpec(
        "cleanarea",
        "SpotArea",
        required_fields=("areaid",),
        args=lambda options: ("start", options["areaid"]),
    ),
    CommandSpec(
        "cleancustomarea",
        "customarea",
        required_fields=("area", "runs"),
        args=lambda options: ("start", options["area"], options["runs"]),
    ),
    CommandSpec("charge", "charge"),
    CommandSpec("pause", "pause"),
    CommandSpec("stop", "stop"),
)

DEFAULT_COMMAND_PROFILE = "full"

COMMAND_PROFILES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "full": tuple(spec.name for spec in COMMAND_SPECS),
        "minimal": ("clean", "cleancustomarea", "charge", "stop"),
    }
)


def command_specs_for(profile: str) -> tuple[CommandSpec, ...]:
    """Return the command specs enabled by a deployment profile."""
    try:
        names = COMMAND_PROFILES[profile]
    except KeyError:
        raise ValueError(f"Unknown command profile: {profile}") from None
    return tuple(spec for spec in COMMAND_SPECS if spec.name in names)


def index_by_name(entries: Iterable[Any], kind: str) -> Mapping[str, Any]:
    """Index routing entries by ``name``, rejecting duplicates."""
    indexed: dict[str, Any] = {}
    for entry in entries:
        if entry.name in indexed:
            raise ValueError(f"Duplicate {kind}: {entry.name}")
        indexed[entry.name] = entry
    return MappingProxyType(indexed)
