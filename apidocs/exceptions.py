class ApiDocsError(Exception):
    pass


class ConfigError(ApiDocsError):
    pass


class StorageError(ApiDocsError):
    """Request to the object storage failed."""

    pass


class ListError(StorageError):
    pass


class DownloadError(StorageError):
    pass


class UploadError(StorageError):
    pass


class DefinitionDecodeError(ApiDocsError):
    """Stored definition is not a valid YAML mapping."""

    pass


class MergeError(ApiDocsError):
    pass


class RenderError(ApiDocsError):
    """Renderer could not be launched or exited with a non-zero status."""

    pass
