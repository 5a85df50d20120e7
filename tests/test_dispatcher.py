"""Tests for the moderation dispatcher against in-memory platform fakes."""

import pytest

from casekeeper.datatypes.ledger_datatypes import CaseType
from casekeeper.datatypes.permission_datatypes import SLASH_COMMANDS, CommandName
from casekeeper.ledger.case_ledger import CaseLedger
from casekeeper.ledger.override_codes import OverrideCodeLedger
from casekeeper.ledger.warning_ledger import WarningLedger
from casekeeper.moderation.dispatcher import BAN_LIST_LIMIT, ModerationDispatcher
from casekeeper.moderation.errors import (
    AuthorizationDenied,
    ExternalActionFailure,
    InvalidInput,
    NotFound,
    StaffImmunityError,
)
from casekeeper.moderation.intents import Actor, EventKind, ModerationIntent, UserRef
from conftest import ADMIN_ROLE, HELPER_ROLE, MOD_ROLE, OVERRIDE_USER, OWNER_ROLE, TRIAL_ROLE

GUILD = "g1"
LOG_CHANNEL = 10
CODE_CHANNEL = 20

OWNER = Actor("1", "owner", [OWNER_ROLE])
ADMIN = Actor("2", "admin", [ADMIN_ROLE])
MOD = Actor("3", "mod", [MOD_ROLE])
TRIAL = Actor("4", "trial", [TRIAL_ROLE])
HELPER = Actor("5", "helper", [HELPER_ROLE])
MEMBER = Actor("6", "member", [])
GHOST = Actor(OVERRIDE_USER, "ghost", [])

TARGET = "1001"
STAFF_TARGET = "1002"


def intent(command, actor, target=None, **options):
    return ModerationIntent(command=command, actor=actor, guild_id=GUILD, target=target, options=options)


@pytest.fixture()
def ledgers(store, clock):
    return (
        WarningLedger(store, clock=clock),
        CaseLedger(store, clock=clock),
        OverrideCodeLedger(store, clock=clock),
    )


@pytest.fixture()
def platform(fake_platform):
    fake_platform.add_user(TARGET, "alice")
    fake_platform.add_user(STAFF_TARGET, "staffer", [MOD_ROLE])
    return fake_platform


@pytest.fixture()
def dispatcher(resolver, ledgers, platform, fake_sink, clock):
    warnings, cases, codes = ledgers
    return ModerationDispatcher(
        resolver,
        warnings,
        cases,
        codes,
        platform,
        fake_sink,
        log_channel_id=LOG_CHANNEL,
        code_channel_id=CODE_CHANNEL,
        clock=clock,
    )


def sent_kinds(sink, channel):
    return [event.kind for channel_id, event in sink.sent if channel_id == channel]


class TestWarn:
    @pytest.mark.asyncio
    async def test_warn_records_and_notifies(self, dispatcher, platform, fake_sink):
        outcome = await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, f"<@{TARGET}>", reason="spam"))

        assert outcome.case_number == 1
        assert outcome.details == {"severity": "moderate", "count": 1, "dm": "sent"}
        assert outcome.ephemeral

        record = await dispatcher.warnings.get_warnings(GUILD, TARGET)
        assert record.count == 1
        case = await dispatcher.cases.find_by_number(GUILD, 1)
        assert case.type is CaseType.WARN
        assert case.moderator_id == TRIAL.user_id
        assert case.severity == "moderate"

        assert platform.dms[0][0] == TARGET
        assert sent_kinds(fake_sink, LOG_CHANNEL) == [EventKind.WARN]

    @pytest.mark.asyncio
    async def test_silent_warn_skips_dm(self, dispatcher, platform):
        outcome = await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="spam", silent=True))

        assert outcome.details["dm"] == "silent"
        assert platform.dms == []

    @pytest.mark.asyncio
    async def test_blocked_dm_still_records(self, dispatcher, platform):
        platform.dm_blocked.add(TARGET)

        outcome = await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="spam"))

        assert outcome.details["dm"] == "failed"
        assert outcome.warnings
        assert outcome.case_number == 1

    @pytest.mark.asyncio
    async def test_warn_with_timeout(self, dispatcher, platform):
        outcome = await dispatcher.dispatch(
            intent(CommandName.WARN, TRIAL, TARGET, reason="spam", severity="severe", timeout=60)
        )

        assert ("timeout", TARGET, 60, "spam") in platform.calls
        assert outcome.details["timeout"] == "1 hour"
        case = await dispatcher.cases.find_by_number(GUILD, outcome.case_number)
        assert case.duration == 60
        assert case.severity == "severe"

    @pytest.mark.asyncio
    async def test_failed_warn_timeout_is_reported(self, dispatcher, platform):
        platform.fail["timeout"] = "missing permissions"

        outcome = await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="spam", timeout=60))

        assert outcome.case_number == 1
        assert "timeout" not in outcome.details
        assert any("missing permissions" in warning for warning in outcome.warnings)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "target, options",
        [
            ("not-a-user", {"reason": "spam"}),
            (TARGET, {}),
            (TARGET, {"reason": "spam", "severity": "apocalyptic"}),
            (TARGET, {"reason": "spam", "timeout": 7}),
        ],
    )
    async def test_invalid_input(self, dispatcher, target, options):
        with pytest.raises(InvalidInput):
            await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, target, **options))

    @pytest.mark.asyncio
    async def test_unknown_user(self, dispatcher):
        with pytest.raises(NotFound):
            await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, "5555", reason="spam"))


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_non_staff_is_denied_without_side_effects(self, dispatcher, platform, fake_sink):
        with pytest.raises(AuthorizationDenied):
            await dispatcher.dispatch(intent(CommandName.WARN, MEMBER, TARGET, reason="spam"))

        assert await dispatcher.warnings.get_warnings(GUILD, TARGET) is None
        assert await dispatcher.cases.find_by_user(GUILD, TARGET) == []
        assert platform.dms == []
        assert fake_sink.sent == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "command, target, options",
        [
            (CommandName.WARN, "not-a-user", {"reason": "spam"}),
            (CommandName.WARN, TARGET, {}),
            (CommandName.BAN, TARGET, {"reason": "raid", "delete_days": 9}),
            (CommandName.TIMEOUT, TARGET, {"reason": "spam", "duration": 3}),
            (CommandName.PURGE, None, {"amount": 0, "channel_id": 55}),
            (CommandName.DELETE_CASE, None, {"number": 0}),
        ],
    )
    async def test_non_staff_is_denied_before_input_checks(self, dispatcher, platform, command, target, options):
        with pytest.raises(AuthorizationDenied, match="permission to use moderation commands"):
            await dispatcher.dispatch(intent(command, MEMBER, target, **options))

        assert platform.calls == []

    @pytest.mark.asyncio
    async def test_staff_without_permission_is_denied(self, dispatcher):
        with pytest.raises(AuthorizationDenied, match="Helper"):
            await dispatcher.dispatch(intent(CommandName.WARN, HELPER, TARGET, reason="spam"))

    @pytest.mark.asyncio
    async def test_staff_target_is_immune(self, dispatcher, platform):
        with pytest.raises(StaffImmunityError):
            await dispatcher.dispatch(intent(CommandName.KICK, MOD, STAFF_TARGET, reason="rude"))

        assert platform.calls == []

    @pytest.mark.asyncio
    async def test_unknown_command(self, dispatcher):
        with pytest.raises(InvalidInput):
            await dispatcher.dispatch(intent(CommandName.HACKBAN, OWNER, TARGET))


class TestInvisibleActor:
    @pytest.mark.asyncio
    async def test_warn_leaves_no_trace(self, dispatcher, platform, fake_sink):
        outcome = await dispatcher.dispatch(intent(CommandName.WARN, GHOST, TARGET, reason="spam"))

        assert outcome.recorded is False
        assert outcome.case_number is None
        assert outcome.details["dm"] == "silent"
        assert await dispatcher.warnings.get_warnings(GUILD, TARGET) is None
        assert await dispatcher.cases.find_by_user(GUILD, TARGET) == []
        assert platform.dms == []
        assert fake_sink.sent == []

    @pytest.mark.asyncio
    async def test_bypasses_immunity_and_still_acts(self, dispatcher, platform, fake_sink):
        outcome = await dispatcher.dispatch(intent(CommandName.BAN, GHOST, STAFF_TARGET, reason="compromised"))

        assert ("ban", STAFF_TARGET, "compromised", 0) in platform.calls
        assert outcome.case_number is None
        assert await dispatcher.cases.find_by_user(GUILD, STAFF_TARGET) == []
        assert fake_sink.sent == []

    @pytest.mark.asyncio
    async def test_overridden_staff_is_recorded(self, dispatcher, resolver):
        staff_ghost = Actor(OVERRIDE_USER, "ghost", [MOD_ROLE])

        outcome = await dispatcher.dispatch(intent(CommandName.KICK, staff_ghost, STAFF_TARGET, reason="test"))

        assert outcome.recorded is True
        assert outcome.case_number == 1


class TestSanctions:
    @pytest.mark.asyncio
    async def test_kick(self, dispatcher, platform, fake_sink):
        outcome = await dispatcher.dispatch(intent(CommandName.KICK, MOD, TARGET, reason="rude"))

        assert ("kick", TARGET, "rude") in platform.calls
        assert (await dispatcher.cases.find_by_number(GUILD, outcome.case_number)).type is CaseType.KICK
        assert sent_kinds(fake_sink, LOG_CHANNEL) == [EventKind.KICK]

    @pytest.mark.asyncio
    async def test_failed_sanction_records_nothing(self, dispatcher, platform, fake_sink):
        platform.fail["kick"] = "Missing Permissions"

        with pytest.raises(ExternalActionFailure):
            await dispatcher.dispatch(intent(CommandName.KICK, MOD, TARGET, reason="rude"))

        assert await dispatcher.cases.find_by_user(GUILD, TARGET) == []
        assert fake_sink.sent == []

    @pytest.mark.asyncio
    async def test_timeout(self, dispatcher, platform):
        outcome = await dispatcher.dispatch(intent(CommandName.TIMEOUT, MOD, TARGET, reason="calm down", duration=10))

        assert ("timeout", TARGET, 10, "calm down") in platform.calls
        case = await dispatcher.cases.find_by_number(GUILD, outcome.case_number)
        assert case.type is CaseType.TIMEOUT
        assert case.duration == 10

    @pytest.mark.asyncio
    async def test_timeout_rejects_free_form_duration(self, dispatcher):
        with pytest.raises(InvalidInput):
            await dispatcher.dispatch(intent(CommandName.TIMEOUT, MOD, TARGET, reason="x", duration=61))

    @pytest.mark.asyncio
    async def test_ban(self, dispatcher, platform):
        outcome = await dispatcher.dispatch(intent(CommandName.BAN, ADMIN, TARGET, reason="raid", delete_days=3))

        assert ("ban", TARGET, "raid", 3) in platform.calls
        case = await dispatcher.cases.find_by_number(GUILD, outcome.case_number)
        assert case.type is CaseType.BAN
        assert case.duration == 3
        assert outcome.details["override_code_used"] is False

    @pytest.mark.asyncio
    async def test_ban_delete_days_range(self, dispatcher):
        with pytest.raises(InvalidInput):
            await dispatcher.dispatch(intent(CommandName.BAN, ADMIN, TARGET, reason="raid", delete_days=8))

    @pytest.mark.asyncio
    async def test_failed_ban_records_nothing(self, dispatcher, platform):
        platform.fail["ban"] = "Unknown User"

        with pytest.raises(ExternalActionFailure):
            await dispatcher.dispatch(intent(CommandName.BAN, ADMIN, TARGET, reason="raid"))

        assert await dispatcher.cases.find_by_user(GUILD, TARGET) == []

    @pytest.mark.asyncio
    async def test_hackban_unknown_user(self, dispatcher, platform):
        outcome = await dispatcher.dispatch(intent(CommandName.BAN, ADMIN, "7777", reason="alt", hackban=True))

        assert ("ban", "7777", "alt", 0) in platform.calls
        case = await dispatcher.cases.find_by_number(GUILD, outcome.case_number)
        assert case.type is CaseType.HACKBAN
        assert case.username == "User ID: 7777"

    @pytest.mark.asyncio
    async def test_hackban_skips_immunity(self, dispatcher, platform):
        await dispatcher.dispatch(intent(CommandName.BAN, ADMIN, STAFF_TARGET, reason="alt", hackban=True))

        assert ("ban", STAFF_TARGET, "alt", 0) in platform.calls

    @pytest.mark.asyncio
    async def test_ban_of_staff_is_refused(self, dispatcher, platform):
        with pytest.raises(StaffImmunityError):
            await dispatcher.dispatch(intent(CommandName.BAN, ADMIN, STAFF_TARGET, reason="raid"))

        assert platform.calls == []


class TestOverrideCodes:
    @pytest.mark.asyncio
    async def test_ban_without_permission_needs_code(self, dispatcher, platform):
        with pytest.raises(AuthorizationDenied, match="override code"):
            await dispatcher.dispatch(intent(CommandName.BAN, MOD, TARGET, reason="raid"))

        assert platform.calls == []

    @pytest.mark.asyncio
    async def test_invalid_code_is_refused(self, dispatcher, platform):
        with pytest.raises(AuthorizationDenied, match="Invalid or already used"):
            await dispatcher.dispatch(intent(CommandName.BAN, MOD, TARGET, reason="raid", override_code="nope"))

        assert platform.calls == []

    @pytest.mark.asyncio
    async def test_ban_with_code(self, dispatcher, platform, fake_sink):
        code = await dispatcher.codes.generate("trial", TRIAL.user_id)

        outcome = await dispatcher.dispatch(
            intent(CommandName.BAN, MOD, TARGET, reason="raid", override_code=code)
        )

        assert outcome.details["override_code_used"] is True
        assert ("ban", TARGET, "raid", 0) in platform.calls
        assert (await dispatcher.cases.find_by_number(GUILD, outcome.case_number)).moderator_id == MOD.user_id

        stored = await dispatcher.codes.all_codes()
        assert stored[0].used and stored[0].used_by == MOD.user_id
        replacement = stored[1]
        assert replacement.auto_generated
        assert not replacement.used
        assert replacement.generated_by_id == TRIAL.user_id

        assert sent_kinds(fake_sink, CODE_CHANNEL) == [EventKind.CODE_USED]
        assert sent_kinds(fake_sink, LOG_CHANNEL) == [EventKind.BAN]

        with pytest.raises(AuthorizationDenied):
            await dispatcher.dispatch(intent(CommandName.BAN, MOD, TARGET, reason="again", override_code=code))

    @pytest.mark.asyncio
    async def test_immunity_checked_before_code_is_spent(self, dispatcher):
        code = await dispatcher.codes.generate("trial", TRIAL.user_id)

        with pytest.raises(StaffImmunityError):
            await dispatcher.dispatch(
                intent(CommandName.BAN, MOD, STAFF_TARGET, reason="raid", override_code=code)
            )

        assert (await dispatcher.codes.find_unused()).code == code

    @pytest.mark.asyncio
    async def test_unban_with_code(self, dispatcher, platform):
        code = await dispatcher.codes.generate("trial", TRIAL.user_id)

        outcome = await dispatcher.dispatch(intent(CommandName.UNBAN, MOD, TARGET, override_code=code))

        assert ("unban", TARGET, "No reason provided") in platform.calls
        assert outcome.details["override_code_used"] is True


class TestUnban:
    @pytest.mark.asyncio
    async def test_unban_creates_no_case(self, dispatcher, platform, fake_sink):
        outcome = await dispatcher.dispatch(intent(CommandName.UNBAN, ADMIN, TARGET, reason="appeal"))

        assert ("unban", TARGET, "appeal") in platform.calls
        assert outcome.case_number is None
        assert await dispatcher.cases.find_by_user(GUILD, TARGET) == []
        assert sent_kinds(fake_sink, LOG_CHANNEL) == [EventKind.UNBAN]

    @pytest.mark.asyncio
    async def test_list_bans(self, dispatcher, platform):
        platform.bans = [UserRef(str(i), f"user{i}") for i in range(12)]

        outcome = await dispatcher.dispatch(intent(CommandName.UNBAN, ADMIN))

        assert outcome.details == {"total": 12, "shown": BAN_LIST_LIMIT}
        assert "user9" in outcome.message
        assert "user10" not in outcome.message

    @pytest.mark.asyncio
    async def test_list_no_bans(self, dispatcher):
        outcome = await dispatcher.dispatch(intent(CommandName.UNBAN, ADMIN))

        assert outcome.message == "No users are currently banned."


class TestCaseLookup:
    async def _seed(self, dispatcher):
        await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="one", severity="minor"))
        await dispatcher.dispatch(intent(CommandName.KICK, MOD, TARGET, reason="two"))

    @pytest.mark.asyncio
    async def test_by_number(self, dispatcher):
        await self._seed(dispatcher)

        outcome = await dispatcher.dispatch(intent(CommandName.CASE, HELPER, number=2))

        assert outcome.title == "Case #2"
        assert outcome.cases[0].type is CaseType.KICK

    @pytest.mark.asyncio
    async def test_by_user(self, dispatcher):
        await self._seed(dispatcher)

        outcome = await dispatcher.dispatch(intent(CommandName.CASE, HELPER, f"<@!{TARGET}>"))

        assert [case.case_number for case in outcome.cases] == [1, 2]
        assert outcome.details["total"] == 2

    @pytest.mark.asyncio
    async def test_by_severity(self, dispatcher):
        await self._seed(dispatcher)

        outcome = await dispatcher.dispatch(intent(CommandName.CASE, HELPER, severity="minor"))

        assert [case.case_number for case in outcome.cases] == [1]

    @pytest.mark.asyncio
    async def test_requires_a_criterion(self, dispatcher):
        with pytest.raises(InvalidInput):
            await dispatcher.dispatch(intent(CommandName.CASE, HELPER))

    @pytest.mark.asyncio
    async def test_missing_case(self, dispatcher):
        with pytest.raises(NotFound):
            await dispatcher.dispatch(intent(CommandName.CASE, HELPER, number=42))

    @pytest.mark.asyncio
    async def test_non_staff_cannot_look_up(self, dispatcher):
        with pytest.raises(AuthorizationDenied):
            await dispatcher.dispatch(intent(CommandName.CASE, MEMBER, number=1))


class TestLedgerMaintenance:
    @pytest.mark.asyncio
    async def test_clear_warnings(self, dispatcher, fake_sink):
        await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="one"))
        await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="two"))

        outcome = await dispatcher.dispatch(intent(CommandName.CLEAR_WARNINGS, ADMIN, TARGET))

        assert outcome.details["cleared"] == 2
        assert await dispatcher.warnings.get_warnings(GUILD, TARGET) is None
        assert EventKind.CLEAR_WARNINGS in sent_kinds(fake_sink, LOG_CHANNEL)

    @pytest.mark.asyncio
    async def test_clear_warnings_without_any(self, dispatcher):
        with pytest.raises(NotFound):
            await dispatcher.dispatch(intent(CommandName.CLEAR_WARNINGS, ADMIN, TARGET))

    @pytest.mark.asyncio
    async def test_clear_warnings_needs_permission(self, dispatcher):
        with pytest.raises(AuthorizationDenied):
            await dispatcher.dispatch(intent(CommandName.CLEAR_WARNINGS, MOD, TARGET))

    @pytest.mark.asyncio
    async def test_delete_case_reverting_warning(self, dispatcher):
        await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="one"))

        outcome = await dispatcher.dispatch(intent(CommandName.DELETE_CASE, ADMIN, number=1, revert_warn=True))

        assert outcome.details["revert"] == "reverted"
        assert await dispatcher.cases.find_by_number(GUILD, 1) is None
        assert await dispatcher.warnings.get_warnings(GUILD, TARGET) is None

    @pytest.mark.asyncio
    async def test_delete_case_keeps_warning_by_default(self, dispatcher):
        await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="one"))

        outcome = await dispatcher.dispatch(intent(CommandName.DELETE_CASE, ADMIN, number=1))

        assert "revert" not in outcome.details
        assert (await dispatcher.warnings.get_warnings(GUILD, TARGET)).count == 1

    @pytest.mark.asyncio
    async def test_revert_on_non_warn_case(self, dispatcher):
        await dispatcher.dispatch(intent(CommandName.KICK, MOD, TARGET, reason="rude"))

        outcome = await dispatcher.dispatch(intent(CommandName.DELETE_CASE, ADMIN, number=1, revert_warn=True))

        assert outcome.details["revert"] == "not_warn"

    @pytest.mark.asyncio
    async def test_revert_without_warnings_left(self, dispatcher):
        await dispatcher.dispatch(intent(CommandName.WARN, TRIAL, TARGET, reason="one"))
        await dispatcher.dispatch(intent(CommandName.CLEAR_WARNINGS, ADMIN, TARGET))

        outcome = await dispatcher.dispatch(intent(CommandName.DELETE_CASE, ADMIN, number=1, revert_warn=True))

        assert outcome.details["revert"] == "nothing"

    @pytest.mark.asyncio
    async def test_delete_missing_case(self, dispatcher):
        with pytest.raises(NotFound):
            await dispatcher.dispatch(intent(CommandName.DELETE_CASE, ADMIN, number=9))

    @pytest.mark.asyncio
    async def test_delete_case_number_must_be_positive(self, dispatcher):
        with pytest.raises(InvalidInput):
            await dispatcher.dispatch(intent(CommandName.DELETE_CASE, ADMIN, number=0))


class TestGenerateBanCode:
    @pytest.mark.asyncio
    async def test_code_is_posted_to_code_channel(self, dispatcher, fake_sink):
        outcome = await dispatcher.dispatch(intent(CommandName.GENERATE_BAN_CODE, TRIAL))

        assert outcome.details["generated"] is True
        assert "code" not in outcome.details
        assert sent_kinds(fake_sink, CODE_CHANNEL) == [EventKind.CODE_GENERATED]
        assert sent_kinds(fake_sink, LOG_CHANNEL) == [EventKind.CODE_GENERATED]

    @pytest.mark.asyncio
    async def test_existing_code_is_reused(self, dispatcher):
        first = await dispatcher.dispatch(intent(CommandName.GENERATE_BAN_CODE, TRIAL))
        second = await dispatcher.dispatch(intent(CommandName.GENERATE_BAN_CODE, MOD))

        assert first.details["generated"] is True
        assert second.details["generated"] is False
        stored = await dispatcher.codes.all_codes()
        assert len(stored) == 1
        assert stored[0].sent_to_channel

    @pytest.mark.asyncio
    async def test_junior_staff_may_not_view(self, dispatcher):
        with pytest.raises(AuthorizationDenied, match="Trial Moderator"):
            await dispatcher.dispatch(intent(CommandName.GENERATE_BAN_CODE, HELPER))

    @pytest.mark.asyncio
    async def test_invisible_actor_gets_code_privately(self, dispatcher, fake_sink):
        outcome = await dispatcher.dispatch(intent(CommandName.GENERATE_BAN_CODE, GHOST))

        assert outcome.recorded is False
        assert outcome.ephemeral
        stored = await dispatcher.codes.all_codes()
        assert outcome.details["code"] == stored[0].code
        assert fake_sink.sent == []

    @pytest.mark.asyncio
    async def test_missing_code_channel(self, resolver, ledgers, platform, fake_sink):
        warnings, cases, codes = ledgers
        dispatcher = ModerationDispatcher(resolver, warnings, cases, codes, platform, fake_sink)

        with pytest.raises(NotFound):
            await dispatcher.dispatch(intent(CommandName.GENERATE_BAN_CODE, TRIAL))
        assert await codes.all_codes() == []


class TestDisclosure:
    @pytest.mark.asyncio
    async def test_replacement_code_is_disclosed_after_delay(self, dispatcher, fake_sink, clock):
        code = await dispatcher.codes.generate("trial", TRIAL.user_id)
        await dispatcher.dispatch(intent(CommandName.BAN, MOD, TARGET, reason="raid", override_code=code))
        fake_sink.sent.clear()

        assert await dispatcher.disclose_pending_codes(GUILD) == []

        clock.advance_hours(24)
        disclosed = await dispatcher.disclose_pending_codes(GUILD)

        assert len(disclosed) == 1
        assert sent_kinds(fake_sink, CODE_CHANNEL) == [EventKind.CODE_DISCLOSED]
        assert fake_sink.sent[0][1].fields["code"] == disclosed[0]

    @pytest.mark.asyncio
    async def test_invisible_generator_is_never_disclosed(self, dispatcher, fake_sink, clock):
        await dispatcher.codes.generate("ghost", OVERRIDE_USER, auto_generated=True)
        clock.advance_hours(48)

        assert await dispatcher.disclose_pending_codes(GUILD) == []
        assert fake_sink.sent == []

    @pytest.mark.asyncio
    async def test_failed_disclosure_is_retried(self, dispatcher, fake_sink, clock):
        await dispatcher.codes.generate("trial", TRIAL.user_id, auto_generated=True)
        clock.advance_hours(25)
        fake_sink.fail = True

        assert await dispatcher.disclose_pending_codes(GUILD) == []

        fake_sink.fail = False
        assert len(await dispatcher.disclose_pending_codes(GUILD)) == 1

    @pytest.mark.asyncio
    async def test_generator_invisibility(self, dispatcher, platform):
        ghost_code = await dispatcher.codes.generate("ghost", OVERRIDE_USER)
        trial_code = await dispatcher.codes.generate("trial", TRIAL.user_id)
        codes = {code.code: code for code in await dispatcher.codes.all_codes()}

        assert await dispatcher.is_generator_invisible(codes[ghost_code], GUILD) is True
        assert await dispatcher.is_generator_invisible(codes[trial_code], GUILD) is False

        platform.members[OVERRIDE_USER] = [MOD_ROLE]
        assert await dispatcher.is_generator_invisible(codes[ghost_code], GUILD) is False


class TestUtilityCommands:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, 1001, None])
    async def test_purge_range(self, dispatcher, amount):
        with pytest.raises(InvalidInput):
            await dispatcher.dispatch(intent(CommandName.PURGE, HELPER, amount=amount, channel_id=55))

    @pytest.mark.asyncio
    async def test_purge(self, dispatcher, platform, fake_sink):
        outcome = await dispatcher.dispatch(intent(CommandName.PURGE, HELPER, TARGET, amount=50, channel_id=55))

        assert ("purge", "55", 50, TARGET) in platform.calls
        assert outcome.details == {"requested": 50, "deleted": 50}
        assert sent_kinds(fake_sink, LOG_CHANNEL) == [EventKind.PURGE]

    @pytest.mark.asyncio
    async def test_purge_needs_staff(self, dispatcher):
        with pytest.raises(AuthorizationDenied):
            await dispatcher.dispatch(intent(CommandName.PURGE, MEMBER, amount=5, channel_id=55))

    @pytest.mark.asyncio
    async def test_help(self, dispatcher):
        outcome = await dispatcher.dispatch(intent(CommandName.HELP, HELPER))

        commands = [entry[0] for entry in outcome.details["commands"]]
        assert any(entry.startswith("/ban") for entry in commands)
        assert len(commands) == len(SLASH_COMMANDS)
        assert commands[0].startswith("/warn")

    @pytest.mark.asyncio
    async def test_help_needs_staff(self, dispatcher):
        with pytest.raises(AuthorizationDenied):
            await dispatcher.dispatch(intent(CommandName.HELP, MEMBER))
