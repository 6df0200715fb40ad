"""
Prompt templates sent to the language model.
"""

from typing import Optional

DEFAULT_LANGUAGE = "english"

ANALYSIS_LANGUAGE = {
    "italian": "Rispondi sempre in italiano. Analizza questo messaggio di log e fornisci suggerimenti in italiano.",
    "english": "Always respond in English. Analyze this log message and provide suggestions in English.",
    "spanish": "Responde siempre en español. Analiza este mensaje de log y proporciona sugerencias en español.",
    "french": "Réponds toujours en français. Analyse ce message de log et fournis des suggestions en français.",
    "german": "Antworte immer auf Deutsch. Analysiere diese Log-Nachricht und gib Vorschläge auf Deutsch.",
}

REPLY_LANGUAGE = {
    "italian": "Rispondi sempre in italiano.",
    "english": "Always respond in English.",
    "spanish": "Responde siempre en español.",
    "french": "Réponds toujours en français.",
    "german": "Antworte immer auf Deutsch.",
}

REPLY_SYSTEM = {
    "italian": "Sei un esperto di cybersecurity e amministrazione di sistema. Fornisci sempre risposte precise, professionali e utili in italiano.",
    "english": "You are a cybersecurity and system administration expert. Always provide precise, professional, and helpful responses in English.",
    "spanish": "Eres un experto en ciberseguridad y administración de sistemas. Siempre proporciona respuestas precisas, profesionales y útiles en español.",
    "french": "Tu es un expert en cybersécurité et administration système. Fournis toujours des réponses précises, professionnelles et utiles en français.",
    "german": "Du bist ein Experte für Cybersicherheit und Systemadministration. Gib immer präzise, professionelle und hilfreiche Antworten auf Deutsch.",
}


def _pick(table: dict, language: Optional[str]) -> str:
    return table.get((language or "").lower(), table[DEFAULT_LANGUAGE])


def analysis_system_prompt(language: Optional[str]) -> str:
    return (
        f"You are a cybersecurity expert analyzing log files. "
        f"{_pick(ANALYSIS_LANGUAGE, language)} Respond only with valid JSON."
    )


def analysis_user_prompt(log_message: str, host: str, timestamp: str, language: Optional[str]) -> str:
    return (
        f"{_pick(ANALYSIS_LANGUAGE, language)}\n\n"
        "Analyze this log message for potential security issues, errors, or anomalies:\n\n"
        f"Host: {host}\n"
        f"Timestamp: {timestamp}\n"
        f"Log: {log_message}\n\n"
        "Please provide:\n"
        "1. Is this anomalous or concerning? (yes/no)\n"
        "2. Severity level (critical/warning/info)\n"
        "3. Brief summary of the issue\n"
        "4. Specific remediation steps or commands\n"
        "5. Confidence level (0-100)\n\n"
        "Format your response as JSON with keys: isAnomalous, severity, summary, suggestion, confidence"
    )


def reply_system_prompt(language: Optional[str]) -> str:
    return _pick(REPLY_SYSTEM, language)


def reply_user_prompt(
    sender: str,
    source: str,
    timestamp: str,
    message: str,
    related_alert_id: Optional[str],
    language: Optional[str],
    alert_context: Optional[str] = None,
) -> str:
    lines = [
        _pick(REPLY_LANGUAGE, language),
        "",
        "You are an AI assistant specialized in cybersecurity helping system administrators.",
        "",
        f"Message received from: {sender}",
        f"Channel: {source}",
        f"Timestamp: {timestamp}",
    ]
    if related_alert_id:
        lines.append(f"Related alert: {related_alert_id}")
    if alert_context:
        lines.append(f"Alert details: {alert_context}")
    lines += [
        "",
        "User message:",
        f'"{message}"',
        "",
        "Provide a helpful and professional answer. If the user asks for technical "
        "information, give specific details and commands when appropriate.",
    ]
    return "\n".join(lines)
