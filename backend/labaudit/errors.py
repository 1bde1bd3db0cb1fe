"""
Exceptions raised by the auditor itself (never by checks, which are isolated).
"""


class LabAuditError(Exception):
    """Base class for auditor errors."""


class AuditDefinitionError(LabAuditError):
    """An audit definition could not be found, parsed or validated."""
    
    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")
