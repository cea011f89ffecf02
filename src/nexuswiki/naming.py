"""Page name normalization.

Two separate stages apply to names:

- ``to_kebab_case`` turns a free-form title ("My First Page") into the slug a
  new page is created under.
- ``normalize_page_name`` + ``sanitize_name`` run on every save. Only the name
  is sanitized; page content is stored as raw markdown and sanitized when it
  is rendered.
"""

import re

from markupsafe import Markup

# Acronym runs, capitalized or lower-case words with trailing digits,
# lone capitals and digit runs
_WORD_PATTERN = re.compile(r"[A-Z]{2,}(?=[A-Z][a-z]+[0-9]*|\b)|[A-Z]?[a-z]+[0-9]*|[A-Z]|[0-9]+")


def to_kebab_case(title: str) -> str:
    """Split a title into words and join them as a lower-case slug.

    Characters that are not ASCII letters or digits only act as separators.

    >>> to_kebab_case("My First Page")
    'my-first-page'
    >>> to_kebab_case("XMLHttpRequest2")
    'xml-http-request2'
    """
    if not title:
        return ""
    return "-".join(_WORD_PATTERN.findall(title)).lower()


def normalize_page_name(name: str) -> str:
    """Trim, replace spaces with dashes and lower-case a submitted page name."""
    return name.strip().replace(" ", "-").lower()


def sanitize_name(name: str) -> str:
    """Strip markup from a page name so it is safe to embed in HTML.

    Only ``&``, ``<`` and ``>`` are encoded in what is left; quotes stay as typed so
    "bob's-notes" can be looked up by its natural name.
    """
    text = Markup(name).striptags()
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def proper_page_name(name: str) -> str:
    """The name a page is stored under after a save."""
    return sanitize_name(normalize_page_name(name))


def kebab_to_title(slug: str) -> str:
    """Turn a slug back into a display title ("my-first-page" -> "My First Page")."""
    return slug.replace("-", " ").title()
