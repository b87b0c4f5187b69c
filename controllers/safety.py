EMERGENCY_KEYWORDS = [
    "chest pain",
    "can't breathe",
    "can not breathe",
    "cannot breathe",
    "difficulty breathing",
    "severe bleeding",
    "suicide",
    "suicidal",
    "kill myself",
    "overdose",
    "heart attack",
    "stroke",
    "unconscious",
    "severe pain",
    "choking",
    "seizure",
]

EMERGENCY_WARNING = (
    "⚠️ EMERGENCY DETECTED: This seems like a medical emergency. Please call "
    "emergency services (911/112) immediately or visit the nearest hospital. "
    "Do not wait for online responses in emergency situations."
)


def detect_emergency(text: str) -> bool:
    """Case-insensitive substring match against EMERGENCY_KEYWORDS."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in EMERGENCY_KEYWORDS)
