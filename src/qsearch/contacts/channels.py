from __future__ import annotations

from enum import Enum

from qsearch.models import MethodKind


class MessagingApp(str, Enum):
    MESSAGES = "messages"
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    SIGNAL = "signal"


class CallingApp(str, Enum):
    CALL = "call"
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    SIGNAL = "signal"
    GOOGLE_MEET = "google_meet"


WHATSAPP_PACKAGE = "com.whatsapp"
TELEGRAM_PACKAGE = "org.telegram.messenger"
SIGNAL_PACKAGE = "org.thoughtcrime.securesms"
GOOGLE_MEET_PACKAGE = "com.google.android.apps.tachyon"

# MESSAGES and CALL are the platform channels and are always available.
MESSAGING_PACKAGES: dict[MessagingApp, str] = {
    MessagingApp.WHATSAPP: WHATSAPP_PACKAGE,
    MessagingApp.TELEGRAM: TELEGRAM_PACKAGE,
    MessagingApp.SIGNAL: SIGNAL_PACKAGE,
}

CALLING_PACKAGES: dict[CallingApp, str] = {
    CallingApp.WHATSAPP: WHATSAPP_PACKAGE,
    CallingApp.TELEGRAM: TELEGRAM_PACKAGE,
    CallingApp.SIGNAL: SIGNAL_PACKAGE,
    CallingApp.GOOGLE_MEET: GOOGLE_MEET_PACKAGE,
}

MESSAGING_KINDS: dict[MessagingApp, tuple[MethodKind, ...]] = {
    MessagingApp.WHATSAPP: (MethodKind.WHATSAPP_MESSAGE,),
    MessagingApp.TELEGRAM: (MethodKind.TELEGRAM_MESSAGE,),
    MessagingApp.SIGNAL: (MethodKind.SIGNAL_MESSAGE,),
}

CALLING_KINDS: dict[CallingApp, tuple[MethodKind, ...]] = {
    CallingApp.WHATSAPP: (MethodKind.WHATSAPP_CALL,),
    CallingApp.TELEGRAM: (MethodKind.TELEGRAM_CALL,),
    CallingApp.SIGNAL: (MethodKind.SIGNAL_CALL,),
    CallingApp.GOOGLE_MEET: (MethodKind.GOOGLE_MEET,),
}


def parse_messaging_app(value: str) -> MessagingApp:
    try:
        return MessagingApp(value.strip().lower())
    except ValueError:
        return MessagingApp.MESSAGES


def parse_calling_app(value: str) -> CallingApp:
    try:
        return CallingApp(value.strip().lower())
    except ValueError:
        return CallingApp.CALL
