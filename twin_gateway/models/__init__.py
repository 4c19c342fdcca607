from .tenant import TenantRecord, Persona, PersonaMode
from .transcript import ConversationTurn, TurnRole, ValidatedTranscript

__all__ = [
    "TenantRecord",
    "Persona",
    "PersonaMode",
    "ConversationTurn",
    "TurnRole",
    "ValidatedTranscript",
]
