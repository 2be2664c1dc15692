"""Package attributes populated from the entry file's manifest."""

import pydantic

from srcpack.manifest import ManifestRecord


class PackageAttributes(pydantic.BaseModel):
    """Attributes of the outer package.

    Fields passed to the constructor count as explicitly set and are never
    overwritten from manifest fields.
    """

    model_config = pydantic.ConfigDict(extra="forbid")

    name: str | None = None
    version: str | None = None
    epoch: str | None = None
    architecture: str | None = None
    description: str | None = None
    url: str | None = None
    category: str | None = None
    priority: str | None = None
    license: str | None = None
    vendor: str | None = None
    maintainer: str | None = None
    meta: dict[str, str] = pydantic.Field(default_factory=dict)


def _description(record: ManifestRecord) -> str | None:
    if record.description is None and not record.comment:
        return None
    return f"{record.description or ''}\n{record.comment}"


def apply_metadata(attrs: PackageAttributes, record: ManifestRecord) -> PackageAttributes:
    """Fill attributes the caller left unset from `record`."""
    candidates = {
        "name": record.id,
        "version": record.version,
        "epoch": record.epoch,
        "architecture": record.architecture,
        "description": _description(record),
        "url": record.url or record.homepage,
        "category": record.category,
        "priority": record.priority,
        "license": record.license,
        "vendor": record.author,
        "maintainer": record.author,
    }
    explicit = attrs.model_fields_set
    updates = {
        name: value
        for name, value in candidates.items()
        if name not in explicit and value is not None
    }
    updates["meta"] = record.fields
    return attrs.model_copy(update=updates)
