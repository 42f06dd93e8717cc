"""Filters available to the asyncapi-markdown template."""

import re


def slug(value):
    return re.sub(r"[^a-z0-9]+", "-", str(value).lower()).strip("-")
