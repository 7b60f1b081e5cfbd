"""
Errors
Exception types raised by the meta-ITH analysis routines
"""


class MetaITHError(Exception):
    """Base class for all analysis errors"""

    def __init__(self, message, source=None):
        self.source = source
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message)


class MalformedInputError(MetaITHError, ValueError):
    """Wrong shape, missing columns, or non-numeric values in an input table"""


class InsufficientTipsError(MetaITHError, ValueError):
    """Fewer than three samples were given to neighbor joining"""


class NormalTipNotFoundError(MetaITHError, KeyError):
    """The normal sample label is not a tip of the tree"""

    def __str__(self):
        # KeyError would repr() the message
        return Exception.__str__(self)


class IncompatibleTipSetError(MetaITHError, ValueError):
    """Two trees being compared have different leaf sets"""


class EmptyIntersectionError(MetaITHError, ValueError):
    """No gene of a gene set is present in the score matrix"""


class MissingArtifactError(MetaITHError, FileNotFoundError):
    """A persisted distance matrix or tree file is absent"""

    def __str__(self):
        return Exception.__str__(self)
