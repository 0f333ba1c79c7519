from pydantic import BaseModel, ConfigDict
from typing import Optional

LANGUAGES = ("html", "python", "java")
LANGUAGE_FIELDS = ("Heading", "Code", "FontSize", "BackgroundColor",
                   "HeaderBackgroundColor", "FooterBackgroundColor")


def default_settings() -> dict:
    settings = {"isAddCode": False, "isPostJob": False, "isApplyJob": False, "isJobs": False}
    for language in LANGUAGES:
        for field in LANGUAGE_FIELDS:
            settings[f"{language}{field}"] = ""
    return settings


class SettingUpdate(BaseModel):
    """Partial update; per-language fields are free-form strings."""
    model_config = ConfigDict(extra="allow")

    isAddCode: Optional[bool] = None
    isPostJob: Optional[bool] = None
    isApplyJob: Optional[bool] = None
    isJobs: Optional[bool] = None

    def changes(self) -> dict:
        allowed = set(default_settings())
        data = self.model_dump(exclude_unset=True)
        return {key: value for key, value in data.items() if key in allowed}
