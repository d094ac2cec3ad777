"""Schemas for the persisted documents: history turns, image records, site code."""

import copy
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue

# Profile is generator-shaped: an open JSON object, never a fixed struct.
Profile = dict[str, JsonValue]

# Sentinel stored in ImageRecord.ai_analysis when the vision call fails
ANALYSIS_FAILED = "analysis failed"

# Artifact part -> file name under the site directory
SITE_FILENAMES: dict[str, str] = {
    "markup": "index.html",
    "style": "style.css",
    "script": "script.js",
}


class ConversationTurn(BaseModel):
    """One user message paired with its (possibly pending) bot reply."""

    user: str
    bot: str = ""

    @property
    def is_pending(self) -> bool:
        return not self.bot


class ImageRecord(BaseModel):
    """An uploaded image as held in Profile.images."""

    model_config = ConfigDict(populate_by_name=True)

    filename: str
    original_name: str = Field(alias="originalName")
    url: str
    uploaded_at: datetime = Field(default_factory=datetime.now, alias="uploadedAt")
    description: str = ""
    ai_analysis: str = Field(default=ANALYSIS_FAILED, alias="aiAnalysis")

    @property
    def analysis_failed(self) -> bool:
        return self.ai_analysis == ANALYSIS_FAILED

    def to_document(self) -> dict[str, Any]:
        """JSON-compatible form with camelCase keys, as stored in the profile."""
        return self.model_dump(mode="json", by_alias=True)


class SiteCode(BaseModel):
    """The three files of one site generation."""

    markup: str
    style: str
    script: str

    def as_files(self) -> dict[str, str]:
        """Map each part to its file name: {"index.html": ..., ...}."""
        return {SITE_FILENAMES[part]: getattr(self, part) for part in SITE_FILENAMES}


DEFAULT_PROFILE: Profile = {
    "name": "",
    "age": "",
    "gender": "",
    "email": "",
    "phone": "",
    "address": "",
    "linkedin": "",
    "github": "",
    "portfolio": "",
    "experience": "",
    "skills": [],
    "languages": [],
    "tools": [],
    "certifications": [],
    "projects": [],
    "college": "",
    "degree": "",
    "fieldOfStudy": "",
    "schooling": "",
    "company": "",
    "role": "",
    "post": "",
    "description": "",
    "interests": [],
    "hobbies": [],
    "goals": "",
    "personality": "",
    "availability": "",
    "preferredLocation": "",
    "expectedSalary": "",
    "noticePeriod": "",
    "achievements": [],
    "volunteering": [],
    "hackathons": [],
    "extracurriculars": [],
}

PLACEHOLDER_CODE = SiteCode(
    markup="""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Portfolio</title>
  <link rel="stylesheet" href="style.css">
</head>
<body>
  <main>
    <h1>Your portfolio will appear here</h1>
    <p>Chat with the assistant, then regenerate the site.</p>
  </main>
  <script src="script.js"></script>
</body>
</html>
""",
    style="""body {
  font-family: system-ui, sans-serif;
  margin: 0;
  display: flex;
  min-height: 100vh;
  align-items: center;
  justify-content: center;
  color: #333;
}
""",
    script="""document.addEventListener('DOMContentLoaded', function() {
    console.log('Portfolio placeholder loaded');
});
""",
)


def default_profile() -> Profile:
    """Fresh copy of the canonical default profile."""
    return copy.deepcopy(DEFAULT_PROFILE)
