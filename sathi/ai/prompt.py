"""Builds the fallback prompt sent to the AI responder."""

from sathi.config import PAGE_CONTEXT

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "ne": "Nepali",
}

_PROFILE_DESCRIPTIONS: dict[str, str] = {
    "default": "General user",
    "blind": "Blind or visually impaired user",
    "deaf": "Deaf or hard of hearing user",
    "motor": "User with motor impairment",
    "cognitive": "User with cognitive disability",
}

_TEMPLATE = """You are {name}, an empathetic AI accessibility assistant helping users with disabilities. Respond in {language}.

USER CONTEXT:
- Language: {language}
- User type: {profile}
- Page content: {context}
- Speech features: text-to-speech and speech-to-text enabled

USER MESSAGE: "{message}"

RESPONSE GUIDELINES:
1. Be conversational, empathetic and helpful.
2. Give actionable guidance for navigating the website and its services.
3. Keep responses concise; they will be read aloud.
4. Always prioritize user safety; point to emergency services when relevant.
{script_rule}
Respond naturally as {name}:"""


class PromptBuilder:
    """Combines persona, user context and the user's words into one prompt."""

    def __init__(self, assistant_name: str = "Sewa Sathi", page_context: str = PAGE_CONTEXT) -> None:
        self.assistant_name = assistant_name
        self.page_context = page_context

    def build(
        self,
        message: str,
        *,
        language: str = "en",
        profile: str = "default",
        extra_context: str | None = None,
    ) -> str:
        """Return the full prompt for *message*.

        *language* is a settings language code (``en``/``ne``) or a BCP-47
        tag; unknown languages are named by their code.
        """
        code = language.split("-")[0].lower()
        language_name = LANGUAGE_NAMES.get(code, language)
        context = self.page_context
        if extra_context:
            context = f"{context} {extra_context}"
        script_rule = (
            "5. Write in proper Devanagari script.\n" if code == "ne" else ""
        )
        return _TEMPLATE.format(
            name=self.assistant_name,
            language=language_name,
            profile=_PROFILE_DESCRIPTIONS.get(profile, _PROFILE_DESCRIPTIONS["default"]),
            context=context,
            message=message.replace('"', "'"),
            script_rule=script_rule,
        )
