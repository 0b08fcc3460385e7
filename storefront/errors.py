class StorefrontError(Exception):
    """Base class for errors raised to callers of the storefront layer."""


class UploadError(StorefrontError):
    pass


class TranslationError(StorefrontError):
    pass
