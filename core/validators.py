"""
Core Validators

Shared validation functions for all modules.
"""


def validate_file_size(
    size_bytes: int,
    max_mb: int,
    module_name: str = "Module"
) -> None:
    """
    Validate that an uploaded document is not larger than allowed.

    Args:
        size_bytes: Document size in bytes
        max_mb: Maximum allowed size in megabytes
        module_name: Name of the module for error messages

    Raises:
        ValueError: If the document is too large
    """
    if size_bytes > max_mb * 1024 * 1024:
        raise ValueError(
            f"{module_name}: File size ({size_bytes} bytes) exceeds "
            f"{max_mb}MB limit."
        )


def validate_text_length(
    text: str,
    max_chars: int,
    module_name: str = "Module"
) -> None:
    """
    Validate that text length doesn't exceed maximum.

    Args:
        text: Text to validate
        max_chars: Maximum allowed characters
        module_name: Name of the module for error messages

    Raises:
        ValueError: If text length exceeds maximum
    """
    if len(text) > max_chars:
        raise ValueError(
            f"{module_name}: Text length ({len(text)}) exceeds "
            f"maximum of {max_chars} characters."
        )
