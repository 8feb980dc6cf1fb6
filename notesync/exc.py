"""NoteSync Error classes."""


class InvalidHostError(Exception):
    """
    This error is raised if an allow-listed host contains characters
    outside of a hostname with an optional port
    """

    def __init__(self, value):
        self.value = value

    def __str__(self):
        return repr(self.value)


class CursorRangeError(Exception):
    """
    This error is raised if an instant cannot be encoded as a cursor
    or a cursor cannot be decoded to an instant
    """

    def __init__(self, value):
        self.value = value

    def __str__(self):
        return repr(self.value)


class MalformedRecordError(Exception):
    """
    This error is raised if a fetched note has a null required column
    """

    def __init__(self, value):
        self.value = value

    def __str__(self):
        return repr(self.value)


class FilterError(Exception):
    def __init__(self, value):
        self.value = value

    def __str__(self):
        return repr(self.value)


class CheckpointError(Exception):
    def __init__(self, value):
        self.value = value

    def __str__(self):
        return repr(self.value)
