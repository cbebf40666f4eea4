"""
Custom exceptions for template handling and deed validation.
"""


class ScrutinyError(Exception):
    """Base exception for document assembly errors"""
    pass


class TemplateArchiveError(ScrutinyError):
    """Raised when an uploaded template is not a readable Word archive"""
    pass


class UnknownCustomFieldError(ScrutinyError):
    """Raised when a deed's custom fields fall outside its template's placeholders"""

    def __init__(self, deed_type: str, keys):
        self.deed_type = deed_type
        self.keys = sorted(keys)
        super().__init__(
            f"Unknown custom field(s) for deed type {deed_type!r}: {', '.join(self.keys)}"
        )
