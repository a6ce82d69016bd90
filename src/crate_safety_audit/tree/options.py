"""
Tree rendering options.
"""

from pydantic import BaseModel, Field

from crate_safety_audit.config import Config
from crate_safety_audit.models.graph import EdgeDirection
from crate_safety_audit.models.tree import Charset, Prefix


class TreeOptions(BaseModel):
    """Options controlling the dependency tree walk."""

    all: bool = Field(
        default=False,
        description="Do not truncate dependencies that have already been displayed.",
    )
    direction: EdgeDirection = Field(default=EdgeDirection.OUTGOING)
    prefix: Prefix = Field(default=Prefix.INDENT)
    charset: Charset = Field(default=Charset.UTF8)

    class Config:
        frozen = True

    @classmethod
    def from_config(cls, config: Config) -> "TreeOptions":
        """Derive tree options from the loaded configuration."""
        direction = EdgeDirection.INCOMING if config.graph.invert else EdgeDirection.OUTGOING
        return cls(
            all=config.output.all,
            direction=direction,
            prefix=config.output.prefix,
            charset=config.output.charset,
        )
