from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Domain(str, Enum):
    APPS = "apps"
    CONTACTS = "contacts"
    FILES = "files"
    SETTINGS = "settings"
    SHORTCUTS = "shortcuts"


@dataclass(frozen=True, slots=True)
class AppInfo:
    app_name: str
    package_name: str
    launch_count: int = 0
    last_used_time: int = 0
    is_system_app: bool = False
    user_handle_id: int | None = None

    @property
    def key(self) -> str:
        # Work-profile apps share a package name with their personal twin.
        if self.user_handle_id is None:
            return self.package_name
        return f"{self.package_name}:{self.user_handle_id}"

    @property
    def display_name(self) -> str:
        return self.app_name


class MethodKind(str, Enum):
    PHONE = "phone"
    SMS = "sms"
    EMAIL = "email"
    WHATSAPP_MESSAGE = "whatsapp_message"
    WHATSAPP_CALL = "whatsapp_call"
    WHATSAPP_VIDEO_CALL = "whatsapp_video_call"
    TELEGRAM_MESSAGE = "telegram_message"
    TELEGRAM_CALL = "telegram_call"
    TELEGRAM_VIDEO_CALL = "telegram_video_call"
    SIGNAL_MESSAGE = "signal_message"
    SIGNAL_CALL = "signal_call"
    SIGNAL_VIDEO_CALL = "signal_video_call"
    GOOGLE_MEET = "google_meet"
    VIDEO_CALL = "video_call"
    CUSTOM_APP = "custom_app"
    VIEW_IN_CONTACTS_APP = "view_in_contacts_app"


@dataclass(frozen=True, slots=True)
class ContactMethod:
    kind: MethodKind
    data: str = ""
    data_id: int | None = None
    label: str = ""
    package_name: str | None = None
    mime_type: str | None = None
    is_primary: bool = False


@dataclass(frozen=True, slots=True)
class ContactInfo:
    contact_id: int
    display_name: str
    lookup_key: str = ""
    phone_numbers: tuple[str, ...] = ()
    contact_methods: tuple[ContactMethod, ...] = ()
    photo_uri: str | None = None

    @property
    def key(self) -> str:
        return str(self.contact_id)


def order_contact_methods(methods: list[ContactMethod]) -> tuple[ContactMethod, ...]:
    """E-mail methods go last; everything else keeps its provider order."""
    return tuple(sorted(methods, key=lambda m: 1 if m.kind == MethodKind.EMAIL else 0))


@dataclass(frozen=True, slots=True)
class DeviceFile:
    uri: str
    display_name: str
    mime_type: str | None = None
    last_modified: int = 0
    is_directory: bool = False
    relative_path: str | None = None
    volume_name: str | None = None

    @property
    def key(self) -> str:
        return self.uri


@dataclass(frozen=True, slots=True)
class DeviceSetting:
    id: str
    title: str
    description: str | None = None
    keywords: tuple[str, ...] = ()
    action: str = ""
    data: str | None = None

    @property
    def key(self) -> str:
        return self.id

    @property
    def display_name(self) -> str:
        return self.title


@dataclass(frozen=True, slots=True)
class AppShortcut:
    package_name: str
    app_label: str
    id: str
    short_label: str | None = None
    long_label: str | None = None
    icon_ref: str | None = None
    enabled: bool = True

    @property
    def key(self) -> str:
        return f"{self.package_name}:{self.id}"

    @property
    def display_name(self) -> str:
        if self.short_label and self.short_label.strip():
            return self.short_label
        if self.long_label and self.long_label.strip():
            return self.long_label
        return self.id


@dataclass(slots=True)
class CustomizationState:
    pinned: set[str] = field(default_factory=set)
    excluded: set[str] = field(default_factory=set)
    nicknames: dict[str, str] = field(default_factory=dict)
