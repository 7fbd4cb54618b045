"""Localized user-facing messages (English and Nepali)."""

_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "done": "Done: {description}",
        "command_failed": "Sorry, that command could not be completed.",
        "ai_apology": "Sorry, I could not get an answer right now. Please try again.",
        "ai_not_configured": "The AI assistant is not configured. Please try a voice command instead, or say help.",
        "low_confidence": "Sorry, I did not catch that. Please try again.",
        "no_speech": "No speech detected. Please try again.",
        "network": "Network error. Please check your connection.",
        "not_allowed": "Microphone access was denied.",
        "aborted": "Listening was cancelled.",
        "audio_capture": "No microphone was found.",
        "voice_unsupported": "Voice input is not supported on this device.",
        "speech_unsupported": "Spoken replies are not available on this device.",
        "language_changed": "Language changed to {language}.",
        "unknown_language": "Sorry, I can only switch between English and Nepali.",
    },
    "ne": {
        "done": "सम्पन्न: {description}",
        "command_failed": "माफ गर्नुहोस्, त्यो आदेश पूरा गर्न सकिएन।",
        "ai_apology": "माफ गर्नुहोस्, अहिले जवाफ पाउन सकिएन। कृपया फेरि प्रयास गर्नुहोस्।",
        "low_confidence": "माफ गर्नुहोस्, मैले बुझिनँ। कृपया फेरि भन्नुहोस्।",
        "no_speech": "कुनै आवाज पहिचान भएन। कृपया फेरि प्रयास गर्नुहोस्।",
        "network": "नेटवर्क त्रुटि। कृपया आफ्नो जडान जाँच गर्नुहोस्।",
        "language_changed": "भाषा {language} मा परिवर्तन गरियो।",
    },
}


def t(key: str, lang: str = "en", **values: str) -> str:
    """Return message *key* in *lang*, falling back to English then the key."""
    code = lang.split("-")[0].lower()
    template = _MESSAGES.get(code, {}).get(key) or _MESSAGES["en"].get(key) or key
    return template.format(**values) if values else template
