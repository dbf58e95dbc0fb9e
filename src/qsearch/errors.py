from __future__ import annotations


class QuickSearchError(Exception):
    pass


class UnknownDomainError(QuickSearchError, ValueError):
    def __init__(self, name: str):
        super().__init__(f"unknown domain: {name}")
        self.name = name


class CatalogError(QuickSearchError):
    pass
