"""Form-level checks applied to a page submission before it is saved."""

from nexuswiki.schemas import PageInput

NAME_REQUIRED = "Name is required."
CONTENT_REQUIRED = "Content is required."


def validate_page_input(
    page_input: PageInput, page_name: str, home_page_name: str
) -> dict[str, list[str]]:
    """Validate a page submission.

    Args:
        page_input: The submitted form.
        page_name: Name of the page the form was posted to.
        home_page_name: Name of the home page, which cannot be renamed.

    Returns:
        Mapping of field name to error messages. Empty if the input is valid.
    """
    errors: dict[str, list[str]] = {}

    if not page_input.name or not page_input.name.strip():
        errors.setdefault("Name", []).append(NAME_REQUIRED)

    if page_name.casefold() == home_page_name.casefold() and page_input.name != home_page_name:
        errors.setdefault("Name", []).append(
            f"You cannot modify home page name. Please keep it {home_page_name}."
        )

    if not page_input.content or not page_input.content.strip():
        errors.setdefault("Content", []).append(CONTENT_REQUIRED)

    return errors
