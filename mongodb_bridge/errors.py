"""
Exceptions raised by the bridge before any driver call is made.
"""


class BridgeError(Exception):
    """Base class for bridge input errors."""

    name = "bridge_error"

    def __init__(self, message=None, entity=None):
        self.entity = entity
        self.message = message or self.name
        super().__init__(self.message)


class DocumentIdEmptyError(BridgeError, ValueError):
    """Raised when a lookup by id receives an empty id."""

    name = "documentId_is_empty"

    def __init__(self, entity=None):
        super().__init__(f"document id is empty (entity={entity})", entity=entity)


class DocumentIdsNotListError(BridgeError, TypeError):
    """Raised when a batch lookup receives something other than a list of ids."""

    name = "documentIds_is_not_an_array"

    def __init__(self, entity=None, value=None):
        super().__init__(
            f"document ids must be a list, got {type(value).__name__} (entity={entity})",
            entity=entity,
        )
        self.value = value
