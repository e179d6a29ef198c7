class MetadataError(Exception):
    pass


class _BaseZarrError(ValueError):
    _msg = ""

    def __init__(self, *args):
        super().__init__(self._msg.format(*args))


class _BaseMetadataError(MetadataError):
    _msg = ""

    def __init__(self, *args):
        super().__init__(self._msg.format(*args))


class NotAZarrGroupError(_BaseZarrError):
    _msg = "path {0!r} is not a zarr group; no .zgroup document found"


class FSPathExistNotDir(NotAZarrGroupError):
    _msg = "path exists but is not a directory: {0!r}"


class UnsupportedFormatError(_BaseZarrError):
    _msg = "only zarr v2 hierarchies can be consolidated; found zarr_format: {0!r}"


class MissingCoreDocumentError(_BaseMetadataError):
    _msg = "core metadata document {0!r} could not be read"


class MalformedDocumentError(_BaseMetadataError):
    _msg = "metadata document {0!r} is not valid JSON: {1}"


class UnreadableDocumentError(_BaseMetadataError):
    _msg = "metadata document {0!r} could not be read: {1}"


class DuplicateKeyError(_BaseZarrError):
    _msg = "key {0!r} is already used for a different entry"


class HierarchyDepthError(_BaseZarrError):
    _msg = "hierarchy below {0!r} is nested deeper than {1} levels"


class WriteFailureError(OSError):
    def __init__(self, key):
        super().__init__(f"could not write consolidated metadata to {key!r}")
        self.key = key


class ReadOnlyError(PermissionError):
    def __init__(self):
        super().__init__("object is read-only")
