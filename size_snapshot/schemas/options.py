"""Pydantic schema for plugin options."""

from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from size_snapshot.errors import InvalidOptionsError

DEFAULT_SNAPSHOT_PATH = ".size-snapshot.json"


class SizeSnapshotOptions(BaseModel):
    """Options accepted by the plugin.

    The key set is closed: anything outside it is reported as a typo
    instead of being silently ignored.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    snapshot_path: str = Field(
        default=DEFAULT_SNAPSHOT_PATH,
        min_length=1,
        validation_alias=AliasChoices("snapshotPath", "snapshot_path"),
    )
    match_snapshot: bool = Field(
        default=False,
        validation_alias=AliasChoices("matchSnapshot", "match_snapshot"),
    )
    threshold: float = Field(default=0, ge=0)
    print_info: bool = Field(
        default=True,
        validation_alias=AliasChoices("printInfo", "print_info"),
    )


def validate_options(raw: Mapping[str, Any] | None = None) -> SizeSnapshotOptions:
    """Validate user supplied options, raising InvalidOptionsError on any problem."""
    try:
        return SizeSnapshotOptions.model_validate(dict(raw or {}))
    except ValidationError as exc:
        unknown = [
            str(err["loc"][0]) for err in exc.errors() if err["type"] == "extra_forbidden"
        ]
        if unknown:
            raise InvalidOptionsError.for_unknown_keys(unknown) from exc
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise InvalidOptionsError(f"Invalid option values: {problems}") from exc
