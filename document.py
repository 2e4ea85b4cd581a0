"""Read-only views over a loaded page.

Extractors only talk to a ``DocumentReader`` so the same parsing code runs
against a live Playwright page or against static HTML parsed by BeautifulSoup.
Missing elements come back as ``None`` or an empty list, never as exceptions.
"""
from abc import ABC, abstractmethod

from bs4 import BeautifulSoup, NavigableString


class DocumentReader(ABC):
    url = ""

    @abstractmethod
    def query_one(self, selector, scope=None):
        """Return the first element matching selector, or None."""

    @abstractmethod
    def query_all(self, selector, scope=None):
        """Return every element matching selector (possibly an empty list)."""

    @abstractmethod
    def text(self, element):
        """Trimmed text content of element."""

    @abstractmethod
    def raw_text(self, element):
        """Untrimmed text content of element."""

    @abstractmethod
    def attribute(self, element, name):
        """Attribute value, or None when the attribute is missing."""

    @abstractmethod
    def next_sibling(self, element):
        """Next element sibling, or None at the end of the parent."""

    @abstractmethod
    def tag_name(self, element):
        """Lowercase tag name."""

    @abstractmethod
    def leading_text(self, element):
        """Text of the element's first child node (usually a bare label)."""

    def text_of(self, selector, scope=None):
        """Trimmed text of the first match, or None if nothing matches."""
        element = self.query_one(selector, scope)
        if element is None:
            return None
        return self.text(element)

    def attribute_of(self, selector, name, scope=None):
        element = self.query_one(selector, scope)
        if element is None:
            return None
        return self.attribute(element, name)


class SoupReader(DocumentReader):
    """DocumentReader over server-rendered HTML."""

    def __init__(self, html, url=""):
        self.soup = BeautifulSoup(html, "html.parser")
        self.url = url

    def query_one(self, selector, scope=None):
        return (scope if scope is not None else self.soup).select_one(selector)

    def query_all(self, selector, scope=None):
        return list((scope if scope is not None else self.soup).select(selector))

    def text(self, element):
        return element.get_text().strip()

    def raw_text(self, element):
        return element.get_text()

    def attribute(self, element, name):
        value = element.get(name)
        if isinstance(value, list):
            # bs4 splits multi-valued attributes such as class
            return " ".join(value)
        return value

    def next_sibling(self, element):
        return element.find_next_sibling()

    def tag_name(self, element):
        return element.name.lower()

    def leading_text(self, element):
        if not element.contents:
            return ""
        first = element.contents[0]
        if isinstance(first, NavigableString):
            return str(first).strip()
        return first.get_text().strip()


class PlaywrightReader(DocumentReader):
    """DocumentReader over a live Playwright page or frame."""

    def __init__(self, page):
        self.page = page
        self.url = page.url

    def query_one(self, selector, scope=None):
        return (scope if scope is not None else self.page).query_selector(selector)

    def query_all(self, selector, scope=None):
        return (scope if scope is not None else self.page).query_selector_all(selector)

    def text(self, element):
        return element.inner_text().strip()

    def raw_text(self, element):
        return element.text_content() or ''

    def attribute(self, element, name):
        return element.get_attribute(name)

    def next_sibling(self, element):
        return element.evaluate_handle("e => e.nextElementSibling").as_element()

    def tag_name(self, element):
        return element.evaluate("e => e.tagName.toLowerCase()")

    def leading_text(self, element):
        return element.evaluate(
            "e => e.firstChild ? (e.firstChild.textContent || '').trim() : ''"
        )
