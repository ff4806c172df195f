"""Minimal strict schema for the YAML run configuration."""

from __future__ import annotations

from communes_fr.common.errors import ConfigError

ENDPOINT_KEYS = ("listing", "departments", "regions", "detail")


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_int(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{ctx} must be a positive integer")


def _validate_stagger(value: object) -> None:
    if not isinstance(value, list) or len(value) != 2:
        raise ConfigError("dispatch.stagger_ms must be a [low, high] pair")
    low, high = value
    for bound in (low, high):
        if isinstance(bound, bool) or not isinstance(bound, (int, float)) or bound < 0:
            raise ConfigError("dispatch.stagger_ms bounds must be non-negative numbers")
    if low > high:
        raise ConfigError("dispatch.stagger_ms low bound exceeds high bound")


def validate_communes_config(cfg: object, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "communes config")
    top_required = {"registry", "http", "dispatch", "collect", "output"}
    _assert_required_keys(cfg, top_required, "communes config")
    _assert_no_unknown_keys(cfg, top_required, "communes config", allow_unknown)

    registry = _assert_mapping(cfg["registry"], "registry")
    _assert_required_keys(registry, {"base_url", *ENDPOINT_KEYS}, "registry")
    for key in ENDPOINT_KEYS:
        endpoint = _assert_mapping(registry[key], f"registry.{key}")
        _assert_required_keys(endpoint, {"path"}, f"registry.{key}")
        if endpoint.get("params") is not None:
            _assert_mapping(endpoint["params"], f"registry.{key}.params")
    if "{code}" not in registry["detail"]["path"]:
        raise ConfigError("registry.detail.path must contain a {code} placeholder")

    http = _assert_mapping(cfg["http"], "http")
    _assert_required_keys(
        http,
        {"connect_timeout_seconds", "read_timeout_seconds", "max_attempts"},
        "http",
    )
    _assert_positive_int(http["max_attempts"], "http.max_attempts")

    dispatch = _assert_mapping(cfg["dispatch"], "dispatch")
    _assert_required_keys(
        dispatch,
        {"stagger_ms", "max_in_flight", "result_capacity", "error_capacity"},
        "dispatch",
    )
    _validate_stagger(dispatch["stagger_ms"])
    if dispatch["max_in_flight"] is not None:
        _assert_positive_int(dispatch["max_in_flight"], "dispatch.max_in_flight")
    _assert_positive_int(dispatch["result_capacity"], "dispatch.result_capacity")
    _assert_positive_int(dispatch["error_capacity"], "dispatch.error_capacity")

    collect = _assert_mapping(cfg["collect"], "collect")
    _assert_required_keys(collect, {"heartbeat_seconds"}, "collect")
    heartbeat = collect["heartbeat_seconds"]
    if isinstance(heartbeat, bool) or not isinstance(heartbeat, (int, float)) or heartbeat <= 0:
        raise ConfigError("collect.heartbeat_seconds must be a positive number")

    output = _assert_mapping(cfg["output"], "output")
    _assert_required_keys(output, {"snapshot_prefix", "error_log_filename"}, "output")

    return cfg
