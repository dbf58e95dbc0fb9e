import pytest

from qsearch.contacts.actions import (
    CALL_PERMISSION,
    CallFlowState,
    ContactActionCoordinator,
    FailureReason,
    LaunchAction,
    RecordingLauncher,
    StaticPermissionChecker,
    should_open_settings_for_permission,
)
from qsearch.contacts.channels import TELEGRAM_PACKAGE, WHATSAPP_PACKAGE, CallingApp, MessagingApp
from qsearch.models import ContactInfo, ContactMethod, MethodKind
from qsearch.recent import RecentKind, RecentLedger
from qsearch.store import MemoryPreferenceStore


def _coordinator(
    granted: bool = False,
    messaging: MessagingApp = MessagingApp.MESSAGES,
    installed: tuple[str, ...] = (),
    succeed: bool = True,
) -> tuple[ContactActionCoordinator, RecordingLauncher, RecentLedger]:
    store = MemoryPreferenceStore()
    launcher = RecordingLauncher(succeed=succeed)
    recent = RecentLedger(store)
    coordinator = ContactActionCoordinator(
        store=store,
        launcher=launcher,
        permissions=StaticPermissionChecker({CALL_PERMISSION} if granted else set()),
        is_installed=lambda package: package in installed,
        messaging_app=lambda: messaging,
        recent=recent,
    )
    return coordinator, launcher, recent


def _ada(*methods: ContactMethod, numbers: tuple[str, ...] = ("+14155550123",)) -> ContactInfo:
    return ContactInfo(
        contact_id=7,
        display_name="Ada Lovelace",
        lookup_key="lk-7",
        phone_numbers=numbers,
        contact_methods=methods,
    )


def test_multiple_numbers_ask_before_direct_dial_choice() -> None:
    coordinator, launcher, _ = _coordinator()
    contact = _ada(numbers=("+14155550123", "+14155550199"))

    outcome = coordinator.call_contact(contact)
    assert outcome.state == CallFlowState.PICK_NUMBER
    assert outcome.numbers == ("+14155550123", "+14155550199")

    outcome = coordinator.select_number("+14155550199")
    assert outcome.state == CallFlowState.DIRECT_DIAL_CHOICE
    assert outcome.numbers == ("+14155550199",)
    assert launcher.requests == []


def test_direct_dial_choice_then_permission_denied_uses_dialer() -> None:
    coordinator, launcher, _ = _coordinator(granted=False)
    assert coordinator.call_contact(_ada()).state == CallFlowState.DIRECT_DIAL_CHOICE

    outcome = coordinator.choose_direct_dial(True)
    assert outcome.state == CallFlowState.AWAITING_PERMISSION
    assert coordinator.has_seen_direct_dial_choice()
    assert coordinator.direct_dial_enabled()
    assert len(coordinator.pending_actions()) == 1

    [resumed] = coordinator.on_call_permission_result(False)
    assert resumed.state == CallFlowState.DIALER_LAUNCHED
    assert launcher.requests[-1].action == LaunchAction.DIAL
    assert launcher.requests[-1].target == "+14155550123"
    assert coordinator.pending_actions() == []


def test_direct_call_when_permission_granted() -> None:
    coordinator, launcher, _ = _coordinator(granted=True)
    coordinator.call_contact(_ada())
    outcome = coordinator.choose_direct_dial(True)
    assert outcome.state == CallFlowState.DIRECT_CALL_LAUNCHED
    assert launcher.requests[-1].action == LaunchAction.DIRECT_CALL

    # The choice is remembered: the next call skips the dialog.
    outcome = coordinator.call_contact(_ada())
    assert outcome.state == CallFlowState.DIRECT_CALL_LAUNCHED


def test_declining_direct_dial_uses_dialer_from_then_on() -> None:
    coordinator, launcher, _ = _coordinator(granted=True)
    coordinator.call_contact(_ada())
    assert coordinator.choose_direct_dial(False).state == CallFlowState.DIALER_LAUNCHED
    assert coordinator.call_contact(_ada()).state == CallFlowState.DIALER_LAUNCHED
    assert [r.action for r in launcher.requests] == [LaunchAction.DIAL, LaunchAction.DIAL]


def test_remembered_number_skips_picker() -> None:
    coordinator, _, _ = _coordinator()
    contact = _ada(numbers=("+14155550123", "+14155550199"))
    coordinator.call_contact(contact)
    coordinator.select_number("+14155550199", remember=True)
    coordinator.dismiss_direct_dial_choice()

    assert coordinator.preferred_number(7) == "+14155550199"
    outcome = coordinator.call_contact(contact)
    assert outcome.state == CallFlowState.DIRECT_DIAL_CHOICE
    assert outcome.numbers == ("+14155550199",)


def test_picker_rejects_numbers_the_contact_does_not_have() -> None:
    coordinator, launcher, _ = _coordinator()
    contact = _ada(numbers=("+14155550123", "+14155550199"))
    coordinator.call_contact(contact)

    for answer in ("", "   ", "+442071838750"):
        outcome = coordinator.select_number(answer, remember=True)
        assert outcome.state == CallFlowState.FAILED
        assert outcome.failure == FailureReason.MISSING_PHONE_NUMBER
        assert outcome.numbers == contact.phone_numbers
    assert coordinator.preferred_number(7) is None
    assert launcher.requests == []

    # The picker is still open and accepts an equivalent local form.
    outcome = coordinator.select_number("415-555-0199", remember=True)
    assert outcome.state == CallFlowState.DIRECT_DIAL_CHOICE
    assert outcome.numbers == ("+14155550199",)
    assert coordinator.preferred_number(7) == "+14155550199"


def test_chat_launch_uses_cleaned_number() -> None:
    wa = ContactMethod(MethodKind.WHATSAPP_MESSAGE, data_id=10)
    coordinator, launcher, _ = _coordinator(messaging=MessagingApp.WHATSAPP, installed=(WHATSAPP_PACKAGE,))
    coordinator.sms_contact(_ada(wa, numbers=("+1 (415) 555-0123",)))
    assert launcher.requests[-1].action == LaunchAction.WHATSAPP_CHAT
    assert launcher.requests[-1].target == "+14155550123"

    outcome = coordinator.sms_contact(_ada(wa, numbers=("555-01",)))
    assert outcome.failure == FailureReason.MISSING_PHONE_NUMBER
    assert len(launcher.requests) == 1


def test_missing_number_and_no_pending_action() -> None:
    coordinator, launcher, recent = _coordinator()
    outcome = coordinator.call_contact(_ada(numbers=()))
    assert outcome.failure == FailureReason.MISSING_PHONE_NUMBER
    assert not outcome.ok
    assert recent.entries() == []

    assert coordinator.select_number("+14155550123").failure == FailureReason.NO_PENDING_ACTION
    assert coordinator.choose_direct_dial(True).failure == FailureReason.NO_PENDING_ACTION
    [outcome] = coordinator.on_call_permission_result(True)
    assert outcome.failure == FailureReason.NO_PENDING_ACTION
    assert launcher.requests == []


def test_dismissed_picker_forgets_selection() -> None:
    coordinator, _, _ = _coordinator()
    coordinator.call_contact(_ada(numbers=("+14155550123", "+14155550199")))
    assert coordinator.dismiss_number_selection().state == CallFlowState.DISMISSED
    assert coordinator.select_number("+14155550123").failure == FailureReason.NO_PENDING_ACTION


def test_sms_goes_through_preferred_messaging_app() -> None:
    wa = ContactMethod(MethodKind.WHATSAPP_MESSAGE, data="+14155550123", data_id=10)
    coordinator, launcher, _ = _coordinator(messaging=MessagingApp.WHATSAPP, installed=(WHATSAPP_PACKAGE,))
    assert coordinator.sms_contact(_ada(wa)).state == CallFlowState.LAUNCHED
    assert launcher.requests[-1].action == LaunchAction.WHATSAPP_CHAT

    coordinator, launcher, _ = _coordinator(messaging=MessagingApp.WHATSAPP)
    coordinator.sms_contact(_ada(wa))
    assert launcher.requests[-1].action == LaunchAction.SMS
    assert launcher.requests[-1].target == "+14155550123"


def test_calling_channel_follows_configured_app() -> None:
    coordinator, _, _ = _coordinator(installed=(TELEGRAM_PACKAGE,))
    contact = _ada(ContactMethod(MethodKind.TELEGRAM_CALL, data="+14155550123", data_id=12))
    assert coordinator.calling_channel(contact) == CallingApp.CALL
    coordinator.calling_app = lambda: CallingApp.TELEGRAM
    assert coordinator.calling_channel(contact, "+14155550123") == CallingApp.TELEGRAM


def test_whatsapp_call_waits_for_permission_and_resumes_once() -> None:
    coordinator, launcher, _ = _coordinator(granted=False)
    method = ContactMethod(MethodKind.WHATSAPP_CALL, data="+14155550123", data_id=21)

    outcome = coordinator.handle_contact_method(_ada(method), method)
    assert outcome.state == CallFlowState.AWAITING_PERMISSION
    assert coordinator.pending_actions()[0].identifiers == ("+14155550123", "21")

    [resumed] = coordinator.on_call_permission_result(True)
    assert resumed.state == CallFlowState.LAUNCHED
    assert resumed.request is not None and resumed.request.data_id == 21
    assert [r.action for r in launcher.requests] == [LaunchAction.WHATSAPP_CALL]

    [again] = coordinator.on_call_permission_result(True)
    assert again.failure == FailureReason.NO_PENDING_ACTION
    assert len(launcher.requests) == 1


def test_denied_permission_fails_pending_app_call() -> None:
    coordinator, launcher, _ = _coordinator(granted=False)
    method = ContactMethod(MethodKind.SIGNAL_VIDEO_CALL, data_id=22)
    coordinator.handle_contact_method(_ada(method), method)
    [outcome] = coordinator.on_call_permission_result(False)
    assert outcome.failure == FailureReason.PERMISSION_DENIED
    assert launcher.requests == []


def test_row_id_required_for_app_actions() -> None:
    coordinator, launcher, _ = _coordinator(granted=True)
    for kind in (MethodKind.WHATSAPP_CALL, MethodKind.TELEGRAM_CALL, MethodKind.GOOGLE_MEET):
        method = ContactMethod(kind, data="+14155550123")
        outcome = coordinator.handle_contact_method(_ada(method), method)
        assert outcome.failure == FailureReason.MISSING_ROW_ID
    chat = ContactMethod(MethodKind.TELEGRAM_MESSAGE)
    assert coordinator.handle_contact_method(_ada(chat), chat).failure == FailureReason.MISSING_ROW_ID
    assert launcher.requests == []


def test_launcher_failure_reports_no_target() -> None:
    coordinator, _, _ = _coordinator(succeed=False)
    method = ContactMethod(MethodKind.EMAIL, data="ada@example.com")
    outcome = coordinator.handle_contact_method(_ada(method), method)
    assert outcome.state == CallFlowState.FAILED
    assert outcome.failure == FailureReason.NO_LAUNCHABLE_TARGET


def test_uninstalled_package_for_custom_app() -> None:
    coordinator, launcher, _ = _coordinator()
    method = ContactMethod(MethodKind.CUSTOM_APP, data="profile", data_id=5, package_name="com.example.chat")
    assert coordinator.handle_contact_method(_ada(method), method).failure == FailureReason.APP_NOT_INSTALLED
    video = ContactMethod(MethodKind.VIDEO_CALL, data="room", package_name="com.example.video")
    assert coordinator.handle_contact_method(_ada(video), video).failure == FailureReason.APP_NOT_INSTALLED
    assert launcher.requests == []


def test_custom_app_prefers_row_id() -> None:
    coordinator, launcher, _ = _coordinator(installed=("com.example.chat",))
    method = ContactMethod(MethodKind.CUSTOM_APP, data="profile", data_id=5, package_name="com.example.chat")
    coordinator.handle_contact_method(_ada(method), method)
    request = launcher.requests[-1]
    assert request.target is None
    assert request.data_id == 5
    assert request.package_name == "com.example.chat"


@pytest.mark.parametrize(
    ("kind", "action"),
    [
        (MethodKind.SMS, LaunchAction.SMS),
        (MethodKind.EMAIL, LaunchAction.EMAIL),
        (MethodKind.WHATSAPP_MESSAGE, LaunchAction.WHATSAPP_CHAT),
        (MethodKind.WHATSAPP_CALL, LaunchAction.WHATSAPP_CALL),
        (MethodKind.WHATSAPP_VIDEO_CALL, LaunchAction.WHATSAPP_VIDEO_CALL),
        (MethodKind.TELEGRAM_MESSAGE, LaunchAction.TELEGRAM_CHAT),
        (MethodKind.TELEGRAM_CALL, LaunchAction.TELEGRAM_CALL),
        (MethodKind.TELEGRAM_VIDEO_CALL, LaunchAction.TELEGRAM_VIDEO_CALL),
        (MethodKind.SIGNAL_MESSAGE, LaunchAction.SIGNAL_CHAT),
        (MethodKind.SIGNAL_CALL, LaunchAction.SIGNAL_CALL),
        (MethodKind.SIGNAL_VIDEO_CALL, LaunchAction.SIGNAL_VIDEO_CALL),
        (MethodKind.GOOGLE_MEET, LaunchAction.GOOGLE_MEET),
        (MethodKind.VIDEO_CALL, LaunchAction.VIDEO_CALL),
        (MethodKind.CUSTOM_APP, LaunchAction.CUSTOM_APP),
        (MethodKind.VIEW_IN_CONTACTS_APP, LaunchAction.VIEW_CONTACT),
    ],
)
def test_every_method_kind_dispatches(kind: MethodKind, action: LaunchAction) -> None:
    coordinator, launcher, recent = _coordinator(granted=True)
    method = ContactMethod(kind, data="+14155550123", data_id=99)
    outcome = coordinator.handle_contact_method(_ada(method), method)
    assert outcome.ok
    assert launcher.requests[-1].action == action
    assert recent.entries()[0].kind == RecentKind.CONTACT
    assert recent.entries()[0].value == "7"


def test_phone_method_starts_call_flow() -> None:
    coordinator, launcher, recent = _coordinator()
    method = ContactMethod(MethodKind.PHONE, data="+14155550123")
    outcome = coordinator.handle_contact_method(_ada(method), method)
    assert outcome.state == CallFlowState.DIRECT_DIAL_CHOICE
    assert len(recent.entries()) == 1


def test_view_contact_targets_lookup_key() -> None:
    coordinator, launcher, _ = _coordinator()
    method = ContactMethod(MethodKind.VIEW_IN_CONTACTS_APP)
    coordinator.handle_contact_method(_ada(method), method)
    assert launcher.requests[-1].target == "lk-7"


def test_permission_prompt_is_always_tried_first() -> None:
    assert should_open_settings_for_permission() is False
