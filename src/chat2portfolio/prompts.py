"""Prompt templates for the generator, keyed by language."""

import json
from typing import Any

SYSTEM_PROMPT = {
    "en": "You are a friendly assistant helping a user build their profile and portfolio. Output ONLY valid JSON.",
    "zh": "你是一个友好的助手，帮助用户完善个人资料并生成作品集网站。只输出合法的 JSON。",
}

CHAT_PROMPT = {
    "en": """Here is the existing chat history:
{conversation}

Here is the current user profile (in JSON):
{profile}

Your task:
- Generate a helpful and relevant next question for the user to build their profile further.
- Reply to the latest user message as part of that question.
- Update the user profile if you infer any new details. Return the COMPLETE profile, keeping every existing field (including "images").
- Respond ONLY in this strict JSON format:

{{
  "nextQuestion": "string",
  "updatedUserProfile": {{ ... }}
}}""",
    "zh": """以下是现有的聊天记录：
{conversation}

以下是当前的用户资料（JSON）：
{profile}

你的任务：
- 提出一个有帮助且相关的下一个问题，以进一步完善用户资料。
- 在问题中回应用户的最新消息。
- 如果推断出新的信息，请更新用户资料。返回完整的资料，保留所有已有字段（包括 "images"）。
- 只按以下严格的 JSON 格式回复：

{{
  "nextQuestion": "string",
  "updatedUserProfile": {{ ... }}
}}""",
}

REGENERATION_PROMPT = {
    "en": """Build a personal portfolio website for this user.

Chat history:
{conversation}

User profile (JSON):
{profile}

Current site code:
--- index.html ---
{markup}
--- style.css ---
{style}
--- script.js ---
{script}

Your task:
- Produce a complete, self-contained three-file site: index.html links style.css and script.js.
- Use uploaded images from profile "images" by their "url" where they fit.
- Return the COMPLETE profile, tidied if needed, keeping every existing field.
- Respond ONLY in this strict JSON format:

{{
  "updatedUserProfile": {{ ... }},
  "updatedCode": {{
    "markup": "full index.html",
    "style": "full style.css",
    "script": "full script.js"
  }}
}}""",
    "zh": """为该用户构建一个个人作品集网站。

聊天记录：
{conversation}

用户资料（JSON）：
{profile}

当前网站代码：
--- index.html ---
{markup}
--- style.css ---
{style}
--- script.js ---
{script}

你的任务：
- 生成完整、独立的三文件网站：index.html 引用 style.css 和 script.js。
- 在合适的位置通过 "url" 使用资料 "images" 中上传的图片。
- 返回完整的资料，可适当整理，保留所有已有字段。
- 只按以下严格的 JSON 格式回复：

{{
  "updatedUserProfile": {{ ... }},
  "updatedCode": {{
    "markup": "完整的 index.html",
    "style": "完整的 style.css",
    "script": "完整的 script.js"
  }}
}}""",
}

VISION_PROMPT = {
    "en": (
        "Describe this image for a personal portfolio: what it shows, and what it suggests "
        "about the person's skills, projects or interests. Answer in two or three sentences."
    ),
    "zh": "请为个人作品集描述这张图片：它展示了什么，以及它体现了此人的哪些技能、项目或兴趣。用两三句话回答。",
}


def format_conversation(history: list[dict[str, Any]]) -> str:
    """
    Render turns as ``User: ...`` / ``Bot: ...`` lines.

    A turn whose bot reply is still pending renders only the user line.
    """
    lines = []
    for turn in history:
        user = turn.get("user", "")
        bot = turn.get("bot", "")
        if user and bot:
            lines.append(f"User: {user}\nBot: {bot}")
        else:
            lines.append(f"User: {user}")
    return "\n".join(lines)


def format_profile(profile: dict[str, Any]) -> str:
    return json.dumps(profile, indent=2, ensure_ascii=False)
