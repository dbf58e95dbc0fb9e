from qsearch.handlers.apps import AppSearchHandler
from qsearch.handlers.base import SearchHandler, SearchState
from qsearch.handlers.contacts import ContactSearchHandler
from qsearch.handlers.files import FileFilters, FileSearchHandler
from qsearch.handlers.settings import SettingsSearchHandler
from qsearch.handlers.shortcuts import AppShortcutSearchHandler

__all__ = [
    "AppSearchHandler",
    "AppShortcutSearchHandler",
    "ContactSearchHandler",
    "FileFilters",
    "FileSearchHandler",
    "SearchHandler",
    "SearchState",
    "SettingsSearchHandler",
]
