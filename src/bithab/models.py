# src/bithab/models.py
import re
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_COLOR = "#888888"
HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def is_hex_color(value) -> bool:
    return isinstance(value, str) and bool(HEX_COLOR.match(value))


class DocumentModel(BaseModel):
    """Models stored in the remote document use camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)


# -------------------------------
# ENTITIES
# -------------------------------
class SubActivity(DocumentModel):
    id: str
    name: str
    color: str = DEFAULT_COLOR

    @field_validator("color")
    @classmethod
    def check_color(cls, value: str) -> str:
        if not is_hex_color(value):
            raise ValueError(f"Not a hex color: {value!r}")
        return value


class Activity(DocumentModel):
    id: str
    name: str
    sub_activities: list[SubActivity] = Field(default_factory=list, alias="subActivities")

    def sub_activity_ids(self) -> set[str]:
        return {sub.id for sub in self.sub_activities}


class Goal(DocumentModel):
    id: str
    name: str
    completed: bool = False


# -------------------------------
# SESSION STATE
# -------------------------------
class UiCursor(BaseModel):
    selected_activity_id: str | None = None
    visible_year: int
    visible_month: int  # 0-based
    expanded_activity_ids: set[str] = Field(default_factory=set)


class Snapshot(DocumentModel):
    """Full serializable state of one user's store."""
    activities: list[Activity] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    logs: dict[str, list[str]] = Field(default_factory=dict)
    ui: UiCursor | None = None
