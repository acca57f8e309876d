"""
Docstring metadata for registered commands.

A command docstring reads like this:

    Create a new term.

    <taxonomy>
    : Taxonomy for the new term.

    [--slug=<slug>]
    : A unique slug for the new term.

    @alias add
    @synopsis <taxonomy> <term> [--slug=<slug>] [--porcelain]

The first paragraph is the short description, the rest is the long
description; @tag lines are metadata and are removed from both.
"""
import inspect
import re


class DocParser:
    def __init__(self, docstring, /):
        self._text = inspect.cleandoc(docstring or "")
        self._tags = {}

        body = []
        for line in self._text.splitlines():
            if match := re.fullmatch(r"\s*@([\w-]+)(?:\s+(.*?))?\s*", line):
                self._tags.setdefault(match[1], match[2] or "")
            else:
                body.append(line)

        short, _, long = "\n".join(body).strip().partition("\n\n")
        self._short = " ".join(short.split())
        self._longdesc = long.strip()

    @property
    def short(self):
        return self._short

    @property
    def longdesc(self):
        return self._longdesc

    def get_tag(self, name, /):
        """
        value of the first '@name value' line, "" for a bare '@name', None when absent.
        """
        return self._tags.get(name)

    def get_synopsis(self):
        return self._tags.get("synopsis") or ""


__all__ = (
    "DocParser",
)
