"""ID generators for new documents."""

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_document_id() -> str:
    """Generate a collision-resistant document id (CUID2).

    Returns:
        A new id, safe to use as a single path segment.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result
