"""
Base model class for Artisan Match data models.

Provides configuration shared across all models.
"""

from pydantic import BaseModel, ConfigDict


class EmbeddedModel(BaseModel):
    """
    Base model for records received from the profile service.

    Fields may be populated by name or alias, and enums are stored as
    their plain values so models dump straight to index metadata.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )
