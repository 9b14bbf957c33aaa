# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Exception classes for xdmextract

Run-aborting failures (unreadable input, broken XML) and per-item failures
(one malformed APP1 segment, one undecodable attribute) share a single root
so callers can catch everything the extractor raises in one place.

Copyright 2025 DNAi inc.
"""

from typing import Optional


class XDMExtractError(Exception):
    """
    Base exception for all xdmextract errors.
    
    All xdmextract exceptions inherit from this class, allowing
    catch-all error handling for any extraction-related errors.
    """
    def __init__(self, message: str = ""):
        """
        Initialize the exception with an optional error message.
        
        Args:
            message: Descriptive error message explaining what went wrong
        """
        self.message = message
        super().__init__(message)


class FileAccessError(XDMExtractError):
    """
    Raised when an input cannot be read or an output cannot be written.
    
    This exception is raised when:
    - The source JPEG does not exist
    - File permissions prevent reading or writing
    - The extended XMP input configured for stage 2 is missing
    """
    def __init__(self, message: str = "", path=None):
        self.path = path
        super().__init__(message)


class MalformedSegmentError(XDMExtractError):
    """
    Raised when an APP1 segment's length field cannot describe its payload.
    
    This exception is raised when:
    - The declared length is smaller than the namespace overhead
    - The payload is shorter than its fixed GUID / header skip region
    - The payload runs past the end of the buffer
    """
    def __init__(self, message: str = "", offset: Optional[int] = None):
        self.offset = offset
        super().__init__(message)


class GuidNotFoundError(XDMExtractError):
    """
    Raised when a standard XMP segment carries no xmpNote:HasExtendedXMP key.

    Routine: it means the packet references no extended XMP.
    """
    pass


class Base64DecodeError(XDMExtractError):
    """
    Raised when an image or depth attribute value is not valid base64.
    """
    def __init__(self, message: str = "", name: str = "", ordinal: int = 0):
        self.name = name
        self.ordinal = ordinal
        super().__init__(message)


class XmlParseError(XDMExtractError):
    """
    Raised when the extended XMP text is not well-formed XML.
    
    The tokenizer cannot continue past the fault, so stage 2 stops here.
    Files written for attributes before the fault are kept.
    """
    def __init__(self, message: str = "", line: Optional[int] = None, column: Optional[int] = None):
        self.line = line
        self.column = column
        super().__init__(message)
