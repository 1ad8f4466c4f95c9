"""Compliance engine settings.

Hierarchy depth caps and advanced query thresholds.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HierarchySettings(BaseSettings):
    """Recipient hierarchy limits.

    Attributes:
        processor_chain_max_depth: Depth cap for sub-processor delegation chains.
        organizational_max_depth: Depth cap for internal department trees.
        grouping_max_depth: Depth cap for informal groupings.
        ancestor_walk_limit: Hard stop for ancestor traversal.
    """

    processor_chain_max_depth: int = Field(
        default=5, ge=1, alias="HIERARCHY_PROCESSOR_CHAIN_MAX_DEPTH"
    )
    organizational_max_depth: int = Field(
        default=10, ge=1, alias="HIERARCHY_ORGANIZATIONAL_MAX_DEPTH"
    )
    grouping_max_depth: int = Field(default=3, ge=1, alias="HIERARCHY_GROUPING_MAX_DEPTH")
    ancestor_walk_limit: int = Field(default=50, ge=1, alias="HIERARCHY_ANCESTOR_WALK_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_walk_limit(self) -> "HierarchySettings":
        """Ensure the ancestor walk can cover the deepest allowed tree."""
        deepest = max(
            self.processor_chain_max_depth,
            self.organizational_max_depth,
            self.grouping_max_depth,
        )
        if self.ancestor_walk_limit < deepest:
            raise ValueError(
                "HIERARCHY_ANCESTOR_WALK_LIMIT must be >= the largest depth cap"
            )
        return self


class ComplianceSettings(BaseSettings):
    """Advanced query configuration.

    Attributes:
        duplicate_name_similarity: SequenceMatcher ratio above which two
            external organization names are reported as duplicates.
        agreement_expiry_window_days: Default look-ahead for expiring agreements.
    """

    duplicate_name_similarity: float = Field(
        default=0.85, gt=0.0, le=1.0, alias="DUPLICATE_NAME_SIMILARITY"
    )
    agreement_expiry_window_days: int = Field(
        default=30, ge=1, alias="AGREEMENT_EXPIRY_WINDOW_DAYS"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
