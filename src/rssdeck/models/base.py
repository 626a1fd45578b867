"""Base model shared by all rssdeck records.

Example:
    >>> from rssdeck.models.base import RssDeckModel
    >>> RssDeckModel.model_config["extra"]
    'forbid'
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class RssDeckModel(BaseModel):
    """Base model with standard configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )
