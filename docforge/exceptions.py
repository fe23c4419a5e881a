"""
Exception classes for DocForge.

Tree operations never raise for structurally valid input; these exceptions
cover the I/O-backed operations (stores, imports, uploads).
"""


class DocForgeError(Exception):
    """Base exception for DocForge"""
    pass


class InvalidFormatError(DocForgeError):
    """A backup, document file or bundle payload is malformed"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class StorageError(DocForgeError):
    """Underlying document, blob or snapshot store failed"""
    pass


class DocumentNotFoundError(DocForgeError):
    """Requested document does not exist in the document store"""

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class UploadStateError(DocForgeError):
    """Illegal transition of a pending media upload"""
    pass
