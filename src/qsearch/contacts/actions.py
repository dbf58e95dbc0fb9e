"""Contact action coordination: call/message flows and per-method dispatch.

The coordinator never talks to the platform directly. It builds a
``LaunchRequest`` and hands it to an ``ActionLauncher``; permission checks go
through a ``PermissionChecker``. Every public call returns an
``ActionOutcome`` describing where the flow stopped, so a caller can render a
picker, a dialog or a notice without the coordinator raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
from typing import Callable

from qsearch.contacts.channels import CallingApp, MessagingApp
from qsearch.contacts.resolver import ProviderRowIndex, resolve_calling_channel, resolve_messaging_channel
from qsearch.models import ContactInfo, ContactMethod, MethodKind
from qsearch.phone import clean_number, is_same_number, is_valid_number
from qsearch.recent import RecentEntry, RecentLedger
from qsearch.store import PreferenceStore

logger = logging.getLogger(__name__)

CALL_PERMISSION = "call_phone"

HAS_SEEN_DIRECT_DIAL_CHOICE = "contacts.has_seen_direct_dial_choice"
DIRECT_DIAL_ENABLED = "contacts.direct_dial_enabled"
PREFERRED_NUMBER_PREFIX = "contacts.preferred_number."


class LaunchAction(str, Enum):
    DIAL = "dial"
    DIRECT_CALL = "direct_call"
    SMS = "sms"
    EMAIL = "email"
    WHATSAPP_CHAT = "whatsapp_chat"
    WHATSAPP_CALL = "whatsapp_call"
    WHATSAPP_VIDEO_CALL = "whatsapp_video_call"
    TELEGRAM_CHAT = "telegram_chat"
    TELEGRAM_CALL = "telegram_call"
    TELEGRAM_VIDEO_CALL = "telegram_video_call"
    SIGNAL_CHAT = "signal_chat"
    SIGNAL_CALL = "signal_call"
    SIGNAL_VIDEO_CALL = "signal_video_call"
    GOOGLE_MEET = "google_meet"
    VIDEO_CALL = "video_call"
    CUSTOM_APP = "custom_app"
    VIEW_CONTACT = "view_contact"


_CHAT_ACTIONS: dict[MessagingApp, LaunchAction] = {
    MessagingApp.WHATSAPP: LaunchAction.WHATSAPP_CHAT,
    MessagingApp.TELEGRAM: LaunchAction.TELEGRAM_CHAT,
    MessagingApp.SIGNAL: LaunchAction.SIGNAL_CHAT,
}


@dataclass(frozen=True, slots=True)
class LaunchRequest:
    action: LaunchAction
    target: str | None = None
    data_id: int | None = None
    package_name: str | None = None
    mime_type: str | None = None


class ActionLauncher:
    def launch(self, request: LaunchRequest) -> bool:
        raise NotImplementedError


class RecordingLauncher(ActionLauncher):
    """Launcher that only records and logs what it was asked to open."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.requests: list[LaunchRequest] = []

    def launch(self, request: LaunchRequest) -> bool:
        self.requests.append(request)
        logger.info("launch %s target=%s data_id=%s", request.action.value, request.target, request.data_id)
        return self.succeed


class PermissionChecker:
    def has_permission(self, kind: str) -> bool:
        raise NotImplementedError


class StaticPermissionChecker(PermissionChecker):
    def __init__(self, granted: set[str] | None = None):
        self.granted = set(granted or ())

    def has_permission(self, kind: str) -> bool:
        return kind in self.granted


class FailureReason(str, Enum):
    MISSING_PHONE_NUMBER = "missing_phone_number"
    APP_NOT_INSTALLED = "app_not_installed"
    NO_LAUNCHABLE_TARGET = "no_launchable_target"
    MISSING_ROW_ID = "missing_row_id"
    PERMISSION_DENIED = "permission_denied"
    NO_PENDING_ACTION = "no_pending_action"


class CallFlowState(str, Enum):
    IDLE = "idle"
    PICK_NUMBER = "pick_number"
    DIRECT_DIAL_CHOICE = "direct_dial_choice"
    AWAITING_PERMISSION = "awaiting_permission"
    DIRECT_CALL_LAUNCHED = "direct_call_launched"
    DIALER_LAUNCHED = "dialer_launched"
    LAUNCHED = "launched"
    DISMISSED = "dismissed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    state: CallFlowState
    request: LaunchRequest | None = None
    failure: FailureReason | None = None
    numbers: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True, slots=True)
class PendingAction:
    """A launch parked until the call permission callback arrives."""

    request: LaunchRequest

    @property
    def identifiers(self) -> tuple[str, ...]:
        ids: list[str] = []
        if self.request.target:
            ids.append(self.request.target)
        if self.request.data_id is not None:
            ids.append(str(self.request.data_id))
        return tuple(ids)


@dataclass(slots=True)
class NumberSelection:
    contact: ContactInfo
    is_call: bool


@dataclass(slots=True)
class DirectDialChoice:
    contact_name: str
    phone_number: str


@dataclass(slots=True)
class FlowState:
    selection: NumberSelection | None = None
    dial_choice: DirectDialChoice | None = None
    pending: list[PendingAction] = field(default_factory=list)


def should_open_settings_for_permission() -> bool:
    # Always try the system permission prompt first, even after a permanent denial.
    return False


def _preferred_key(contact_id: int) -> str:
    return f"{PREFERRED_NUMBER_PREFIX}{contact_id}"


def _matching_number(contact: ContactInfo, number: str) -> str | None:
    if not number.strip():
        return None
    for candidate in contact.phone_numbers:
        if is_same_number(candidate, number):
            return candidate
    return None


class ContactActionCoordinator:
    def __init__(
        self,
        store: PreferenceStore,
        launcher: ActionLauncher,
        permissions: PermissionChecker,
        is_installed: Callable[[str], bool],
        messaging_app: Callable[[], MessagingApp],
        calling_app: Callable[[], CallingApp] | None = None,
        recent: RecentLedger | None = None,
        row_index: ProviderRowIndex | None = None,
    ):
        self.store = store
        self.launcher = launcher
        self.permissions = permissions
        self.is_installed = is_installed
        self.messaging_app = messaging_app
        self.calling_app = calling_app or (lambda: CallingApp.CALL)
        self.recent = recent
        self.row_index = row_index
        self.state = FlowState()
        self._lock = threading.RLock()
        self._dispatch: dict[MethodKind, Callable[[ContactInfo, ContactMethod], ActionOutcome]] = {
            MethodKind.PHONE: self._method_phone,
            MethodKind.SMS: self._method_sms,
            MethodKind.EMAIL: self._method_email,
            MethodKind.WHATSAPP_MESSAGE: self._chat(LaunchAction.WHATSAPP_CHAT),
            MethodKind.WHATSAPP_CALL: self._guarded_call(LaunchAction.WHATSAPP_CALL),
            MethodKind.WHATSAPP_VIDEO_CALL: self._guarded_call(LaunchAction.WHATSAPP_VIDEO_CALL),
            MethodKind.TELEGRAM_MESSAGE: self._chat(LaunchAction.TELEGRAM_CHAT),
            MethodKind.TELEGRAM_CALL: self._row_action(LaunchAction.TELEGRAM_CALL),
            MethodKind.TELEGRAM_VIDEO_CALL: self._row_action(LaunchAction.TELEGRAM_VIDEO_CALL),
            MethodKind.SIGNAL_MESSAGE: self._chat(LaunchAction.SIGNAL_CHAT),
            MethodKind.SIGNAL_CALL: self._guarded_call(LaunchAction.SIGNAL_CALL),
            MethodKind.SIGNAL_VIDEO_CALL: self._guarded_call(LaunchAction.SIGNAL_VIDEO_CALL),
            MethodKind.GOOGLE_MEET: self._row_action(LaunchAction.GOOGLE_MEET),
            MethodKind.VIDEO_CALL: self._method_video_call,
            MethodKind.CUSTOM_APP: self._method_custom_app,
            MethodKind.VIEW_IN_CONTACTS_APP: self._method_view_contact,
        }

    # preferences

    def preferred_number(self, contact_id: int) -> str | None:
        return self.store.get_value(_preferred_key(contact_id))

    def set_preferred_number(self, contact_id: int, number: str | None) -> None:
        self.store.set_value(_preferred_key(contact_id), number)

    def has_seen_direct_dial_choice(self) -> bool:
        return self.store.get_bool(HAS_SEEN_DIRECT_DIAL_CHOICE)

    def direct_dial_enabled(self) -> bool:
        return self.store.get_bool(DIRECT_DIAL_ENABLED)

    # flows

    def _track(self, contact: ContactInfo) -> None:
        if self.recent is not None:
            self.recent.record(RecentEntry.contact(contact.contact_id))

    def _launch(self, request: LaunchRequest, state: CallFlowState = CallFlowState.LAUNCHED) -> ActionOutcome:
        if self.launcher.launch(request):
            return ActionOutcome(state=state, request=request)
        logger.warning("no launchable target for %s", request.action.value)
        return ActionOutcome(state=CallFlowState.FAILED, request=request, failure=FailureReason.NO_LAUNCHABLE_TARGET)

    def _number_for(self, contact: ContactInfo, is_call: bool) -> ActionOutcome | str:
        if not contact.phone_numbers:
            return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.MISSING_PHONE_NUMBER)
        self._track(contact)

        preferred = self.preferred_number(contact.contact_id)
        if preferred is not None and preferred in contact.phone_numbers:
            return preferred
        if len(contact.phone_numbers) > 1:
            self.state.selection = NumberSelection(contact=contact, is_call=is_call)
            return ActionOutcome(state=CallFlowState.PICK_NUMBER, numbers=contact.phone_numbers)
        return contact.phone_numbers[0]

    def call_contact(self, contact: ContactInfo) -> ActionOutcome:
        with self._lock:
            picked = self._number_for(contact, is_call=True)
            if isinstance(picked, ActionOutcome):
                return picked
            return self._begin_call_flow(contact.display_name, picked)

    def sms_contact(self, contact: ContactInfo) -> ActionOutcome:
        with self._lock:
            picked = self._number_for(contact, is_call=False)
            if isinstance(picked, ActionOutcome):
                return picked
            return self._perform_messaging(contact, picked)

    def select_number(self, number: str, remember: bool = False) -> ActionOutcome:
        with self._lock:
            selection = self.state.selection
            if selection is None:
                return ActionOutcome(state=CallFlowState.IDLE, failure=FailureReason.NO_PENDING_ACTION)
            contact = selection.contact
            chosen = _matching_number(contact, number)
            if chosen is None:
                # Selection stays open so the picker can be answered again.
                return ActionOutcome(
                    state=CallFlowState.FAILED,
                    failure=FailureReason.MISSING_PHONE_NUMBER,
                    numbers=contact.phone_numbers,
                )
            number = chosen
            self.state.selection = None
            if remember:
                self.set_preferred_number(contact.contact_id, number)
            if selection.is_call:
                return self._begin_call_flow(contact.display_name, number)
            return self._perform_messaging(contact, number)

    def dismiss_number_selection(self) -> ActionOutcome:
        with self._lock:
            self.state.selection = None
        return ActionOutcome(state=CallFlowState.DISMISSED)

    def _begin_call_flow(self, contact_name: str, number: str) -> ActionOutcome:
        if not self.has_seen_direct_dial_choice():
            self.state.dial_choice = DirectDialChoice(contact_name=contact_name, phone_number=number)
            return ActionOutcome(state=CallFlowState.DIRECT_DIAL_CHOICE, numbers=(number,))
        if self.direct_dial_enabled():
            return self._start_direct_call(number)
        return self._launch(LaunchRequest(LaunchAction.DIAL, target=number), CallFlowState.DIALER_LAUNCHED)

    def _start_direct_call(self, number: str) -> ActionOutcome:
        request = LaunchRequest(LaunchAction.DIRECT_CALL, target=number)
        if self.permissions.has_permission(CALL_PERMISSION):
            return self._launch(request, CallFlowState.DIRECT_CALL_LAUNCHED)
        self.state.pending.append(PendingAction(request))
        return ActionOutcome(state=CallFlowState.AWAITING_PERMISSION, request=request)

    def choose_direct_dial(self, use_direct_dial: bool) -> ActionOutcome:
        with self._lock:
            choice = self.state.dial_choice
            if choice is None:
                return ActionOutcome(state=CallFlowState.IDLE, failure=FailureReason.NO_PENDING_ACTION)
            self.state.dial_choice = None
            self.store.set_bool(HAS_SEEN_DIRECT_DIAL_CHOICE, True)
            self.store.set_bool(DIRECT_DIAL_ENABLED, use_direct_dial)
            if use_direct_dial:
                return self._start_direct_call(choice.phone_number)
            return self._launch(
                LaunchRequest(LaunchAction.DIAL, target=choice.phone_number), CallFlowState.DIALER_LAUNCHED
            )

    def dismiss_direct_dial_choice(self) -> ActionOutcome:
        with self._lock:
            self.state.dial_choice = None
        return ActionOutcome(state=CallFlowState.DISMISSED)

    def pending_actions(self) -> list[PendingAction]:
        with self._lock:
            return list(self.state.pending)

    def on_call_permission_result(self, granted: bool) -> list[ActionOutcome]:
        """Resume or drop every parked action; the queue is empty afterwards."""
        with self._lock:
            pending = self.state.pending
            self.state.pending = []
            if not pending:
                return [ActionOutcome(state=CallFlowState.IDLE, failure=FailureReason.NO_PENDING_ACTION)]

            outcomes: list[ActionOutcome] = []
            for action in pending:
                request = action.request
                if request.action == LaunchAction.DIRECT_CALL:
                    if granted:
                        outcomes.append(self._launch(request, CallFlowState.DIRECT_CALL_LAUNCHED))
                    else:
                        # Denied direct calls still reach the user through the dialer.
                        outcomes.append(
                            self._launch(
                                LaunchRequest(LaunchAction.DIAL, target=request.target),
                                CallFlowState.DIALER_LAUNCHED,
                            )
                        )
                elif granted:
                    outcomes.append(self._launch(request))
                else:
                    outcomes.append(
                        ActionOutcome(
                            state=CallFlowState.FAILED,
                            request=request,
                            failure=FailureReason.PERMISSION_DENIED,
                        )
                    )
            return outcomes

    def _perform_messaging(self, contact: ContactInfo, number: str) -> ActionOutcome:
        channel = resolve_messaging_channel(
            contact, self.messaging_app(), self.is_installed, phone_number=number, row_index=self.row_index
        )
        if channel == MessagingApp.MESSAGES:
            return self._launch(LaunchRequest(LaunchAction.SMS, target=number))
        # Chat deep links take a bare international number.
        if not is_valid_number(number):
            logger.warning("cannot open %s chat for %r", channel.value, number)
            return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.MISSING_PHONE_NUMBER)
        return self._launch(LaunchRequest(_CHAT_ACTIONS[channel], target=clean_number(number)))

    def calling_channel(self, contact: ContactInfo, number: str | None = None) -> CallingApp:
        return resolve_calling_channel(
            contact, self.calling_app(), self.is_installed, phone_number=number, row_index=self.row_index
        )

    # per-method dispatch

    def handle_contact_method(self, contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
        with self._lock:
            if method.kind != MethodKind.PHONE:
                self._track(contact)
            return self._dispatch[method.kind](contact, method)

    def _method_phone(self, contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
        return self.call_contact(contact)

    def _method_sms(self, contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
        if not method.data.strip():
            return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.MISSING_PHONE_NUMBER)
        return self._launch(LaunchRequest(LaunchAction.SMS, target=method.data))

    def _method_email(self, contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
        if not method.data.strip():
            return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.NO_LAUNCHABLE_TARGET)
        return self._launch(LaunchRequest(LaunchAction.EMAIL, target=method.data))

    def _chat(self, action: LaunchAction) -> Callable[[ContactInfo, ContactMethod], ActionOutcome]:
        def handle(contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
            if method.data_id is None and not method.data.strip():
                return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.MISSING_ROW_ID)
            return self._launch(
                LaunchRequest(action, target=method.data or None, data_id=method.data_id, mime_type=method.mime_type)
            )

        return handle

    def _row_action(self, action: LaunchAction) -> Callable[[ContactInfo, ContactMethod], ActionOutcome]:
        def handle(contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
            if method.data_id is None:
                return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.MISSING_ROW_ID)
            return self._launch(
                LaunchRequest(action, target=method.data or None, data_id=method.data_id, mime_type=method.mime_type)
            )

        return handle

    def _guarded_call(self, action: LaunchAction) -> Callable[[ContactInfo, ContactMethod], ActionOutcome]:
        def handle(contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
            if method.data_id is None:
                logger.warning("%s for contact %s has no row id", action.value, contact.contact_id)
                return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.MISSING_ROW_ID)
            request = LaunchRequest(
                action, target=method.data or None, data_id=method.data_id, mime_type=method.mime_type
            )
            if self.permissions.has_permission(CALL_PERMISSION):
                return self._launch(request)
            self.state.pending.append(PendingAction(request))
            return ActionOutcome(state=CallFlowState.AWAITING_PERMISSION, request=request)

        return handle

    def _method_video_call(self, contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
        if method.package_name and not self.is_installed(method.package_name):
            return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.APP_NOT_INSTALLED)
        return self._launch(
            LaunchRequest(LaunchAction.VIDEO_CALL, target=method.data or None, package_name=method.package_name)
        )

    def _method_custom_app(self, contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
        if method.package_name and not self.is_installed(method.package_name):
            return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.APP_NOT_INSTALLED)
        if method.data_id is None and not method.data.strip():
            return ActionOutcome(state=CallFlowState.FAILED, failure=FailureReason.NO_LAUNCHABLE_TARGET)
        # Row id first; the raw datum is only used when the provider gave no row.
        return self._launch(
            LaunchRequest(
                LaunchAction.CUSTOM_APP,
                target=None if method.data_id is not None else method.data,
                data_id=method.data_id,
                package_name=method.package_name,
                mime_type=method.mime_type,
            )
        )

    def _method_view_contact(self, contact: ContactInfo, method: ContactMethod) -> ActionOutcome:
        return self._launch(LaunchRequest(LaunchAction.VIEW_CONTACT, target=contact.lookup_key or contact.key))
