"""
Moderation command dispatcher.

Every command goes through the same steps, in order:

1. validate its options (``InvalidInput``),
2. pass the staff gate and the per-command permission check, or redeem an
   override code (``AuthorizationDenied`` / ``StaffImmunityError``),
3. execute the sanction on the platform (``ExternalActionFailure``),
4. record it in the ledgers, only if the actor is recordable,
5. notify the log channel, again only if the actor is recordable.

A failed sanction raises before step 4, so the ledgers never record an action
that did not happen. The dispatcher knows nothing about Discord; it talks to a
:class:`ModerationPlatform` and a :class:`NotificationSink`.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from casekeeper.datatypes.ledger_datatypes import DEFAULT_SEVERITY, CaseType, OverrideCode, Severity
from casekeeper.datatypes.permission_datatypes import SLASH_COMMANDS, STAFF_WIDE_COMMANDS, CommandName
from casekeeper.ledger.case_ledger import CaseLedger
from casekeeper.ledger.override_codes import OverrideCodeLedger
from casekeeper.ledger.warning_ledger import WarningLedger
from casekeeper.moderation.errors import (
    AuthorizationDenied,
    ExternalActionFailure,
    InvalidInput,
    NotFound,
    StaffImmunityError,
    StorageFailure,
)
from casekeeper.moderation.intents import (
    ActionOutcome,
    Actor,
    EventKind,
    ModerationEvent,
    ModerationIntent,
    UserRef,
)
from casekeeper.moderation.platform import ModerationPlatform, NotificationSink
from casekeeper.permissions.resolver import RoleResolver
from casekeeper.util.discord_utils import (
    ALLOWED_TIMEOUT_MINUTES,
    MAX_BAN_DELETE_DAYS,
    PURGE_MAX,
    PURGE_MIN,
    format_minutes,
    now_ms,
    parse_target_id,
)
from casekeeper.util.logger import get_logger

logger = get_logger("moderation_dispatcher")

CASE_RESULTS_LIMIT = 20
BAN_LIST_LIMIT = 10

HELP_ENTRIES: Dict[CommandName, Tuple[str, str]] = {
    CommandName.WARN: ("/warn @user <reason>", "Warn a user. Options: severity (minor, moderate, severe), timeout, silent (no DM)."),
    CommandName.TIMEOUT: ("/timeout @user <duration> <reason>", "Time out a user without a warning."),
    CommandName.KICK: ("/kick @user <reason>", "Kick a user from the server."),
    CommandName.BAN: ("/ban <target> <reason>", "Ban by mention or user ID. Options: hackban, delete_days (0-7), override_code."),
    CommandName.UNBAN: ("/unban [user_id] <reason>", "Unban a user, or list current bans when user_id is left empty."),
    CommandName.CLEAR_WARNINGS: ("/clearwarnings @user", "Clear every warning of a user."),
    CommandName.PURGE: ("/purge <amount>", "Delete 1-1000 recent messages, optionally only from one user. All staff."),
    CommandName.CASE: ("/case", "Look up cases by number, user or severity. All staff."),
    CommandName.DELETE_CASE: ("/deletecase <number>", "Delete a case, optionally reverting the warning it recorded."),
    CommandName.GENERATE_BAN_CODE: ("/generatebancode", "Show the current ban override code or generate one."),
    CommandName.HELP: ("/help", "Show this message. All staff."),
}


class ModerationDispatcher:
    """Routes a :class:`ModerationIntent` to its command handler."""

    def __init__(
        self,
        resolver: RoleResolver,
        warnings: WarningLedger,
        cases: CaseLedger,
        codes: OverrideCodeLedger,
        platform: ModerationPlatform,
        sink: NotificationSink,
        log_channel_id: Optional[int] = None,
        code_channel_id: Optional[int] = None,
        max_viewer_level: int = 7,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.resolver = resolver
        self.warnings = warnings
        self.cases = cases
        self.codes = codes
        self.platform = platform
        self.sink = sink
        self.log_channel_id = log_channel_id
        self.code_channel_id = code_channel_id
        self.max_viewer_level = max_viewer_level
        self._clock = clock

        self._handlers: Dict[CommandName, Callable[[ModerationIntent], Awaitable[ActionOutcome]]] = {
            CommandName.WARN: self._warn,
            CommandName.TIMEOUT: self._timeout,
            CommandName.KICK: self._kick,
            CommandName.BAN: self._ban,
            CommandName.UNBAN: self._unban,
            CommandName.CASE: self._case,
            CommandName.CLEAR_WARNINGS: self._clear_warnings,
            CommandName.DELETE_CASE: self._delete_case,
            CommandName.GENERATE_BAN_CODE: self._generate_ban_code,
            CommandName.PURGE: self._purge,
            CommandName.HELP: self._help,
        }

    async def dispatch(self, intent: ModerationIntent) -> ActionOutcome:
        """Run one command.

        Raises:
            ModerationError: Any subclass, carrying a message for the moderator.
        """
        self._require_staff(intent.actor)
        handler = self._handlers.get(intent.command)
        if handler is None:
            raise InvalidInput(f"Unknown command: {intent.command}")
        return await handler(intent)

    # --------------------------
    # Authorization helpers
    # --------------------------
    def _recordable(self, actor: Actor) -> bool:
        return self.resolver.is_recordable(actor.role_ids, actor.user_id)

    def _require_staff(self, actor: Actor) -> None:
        if not self.resolver.is_staff(actor.role_ids, actor.user_id):
            raise AuthorizationDenied("You do not have permission to use moderation commands.")

    def _role_name(self, actor: Actor) -> str:
        identity = self.resolver.resolve_identity(actor.role_ids, actor.user_id)
        return identity.name if identity else "Unknown"

    def _has_permission(self, actor: Actor, command: CommandName) -> bool:
        if command in STAFF_WIDE_COMMANDS:
            return True
        return self.resolver.has_command_permission(actor.role_ids, actor.user_id, command)

    def _require_permission(self, actor: Actor, command: CommandName) -> None:
        self._require_staff(actor)
        if not self._has_permission(actor, command):
            raise AuthorizationDenied(
                f"Your role **{self._role_name(actor)}** does not have permission to use this command."
            )

    async def _check_immunity(self, intent: ModerationIntent, target_id: str, verb: str) -> None:
        role_ids = await self.platform.fetch_member_role_ids(intent.guild_id, target_id)
        if role_ids is None:
            return
        if self.resolver.is_target_immune(intent.actor.user_id, role_ids):
            role = self.resolver.highest_staff_role(role_ids)
            raise StaffImmunityError(
                f"This user is a staff member ({role.name if role else 'staff'}) and cannot be {verb} by you."
            )

    async def _authorize_privileged(self, intent: ModerationIntent, command: CommandName, action: str) -> bool:
        """Staff gate plus ``command`` permission, falling back to an override code.

        Returns:
            True when an override code was consumed.
        """
        actor = intent.actor
        self._require_staff(actor)
        if self._has_permission(actor, command):
            return False

        code = (intent.option("override_code") or "").strip()
        if not code:
            raise AuthorizationDenied(
                f"Your role **{self._role_name(actor)}** does not have permission to use this command. "
                "You need an override code."
            )

        await self._redeem_override_code(intent, code, action)
        return True

    async def _redeem_override_code(self, intent: ModerationIntent, code: str, action: str) -> OverrideCode:
        actor = intent.actor
        data = await self.codes.validate_and_consume(code, actor.user_id)
        if data is None or data.command != CommandName.BAN.value:
            raise AuthorizationDenied("Invalid or already used override code.")

        if self._recordable(actor):
            await self._notify(
                self.code_channel_id,
                ModerationEvent(
                    kind=EventKind.CODE_USED,
                    guild_id=intent.guild_id,
                    actor_id=actor.user_id,
                    actor_name=actor.display_name,
                    fields={"code": code, "action": action, "generated_by": data.generated_by},
                ),
            )
        else:
            logger.debug("[DISPATCHER] Invisible actor %s used an override code", actor.user_id)

        try:
            await self.codes.generate(data.generated_by, data.generated_by_id, auto_generated=True)
        except StorageFailure as exc:
            logger.error("[DISPATCHER] Failed to generate replacement override code: %s", exc)
        return data

    # --------------------------
    # Shared helpers
    # --------------------------
    async def _notify(self, channel_id: Optional[int], event: ModerationEvent) -> bool:
        """Send a channel notification; failures are logged and reported as False."""
        try:
            await self.sink.send(channel_id, event)
        except ExternalActionFailure as exc:
            logger.warning("[DISPATCHER] Failed to send %s notification: %s", event.kind, exc.reason)
            return False
        return True

    async def _log(self, intent: ModerationIntent, event: ModerationEvent) -> None:
        if self._recordable(intent.actor):
            await self._notify(self.log_channel_id, event)
        else:
            logger.debug("[DISPATCHER] %s by invisible actor %s not logged", event.kind, intent.actor.user_id)

    def _target_id(self, intent: ModerationIntent) -> str:
        target_id = parse_target_id(intent.target)
        if target_id is None:
            raise InvalidInput("Please provide a valid user mention (@user) or user ID.")
        return target_id

    async def _resolve_user(self, user_id: str, required: bool = True) -> UserRef:
        user = await self.platform.fetch_user(user_id)
        if user is not None:
            return user
        if required:
            raise NotFound(f"Could not find user **{user_id}**.")
        return UserRef(user_id=user_id, username=f"User ID: {user_id}")

    @staticmethod
    def _reason(intent: ModerationIntent) -> str:
        reason = (intent.option("reason") or "").strip()
        if not reason:
            raise InvalidInput("A reason is required.")
        return reason

    def _event(self, kind: EventKind, intent: ModerationIntent, target: Optional[UserRef] = None, **kwargs) -> ModerationEvent:
        return ModerationEvent(
            kind=kind,
            guild_id=intent.guild_id,
            actor_id=intent.actor.user_id,
            actor_name=intent.actor.display_name,
            target_id=target.user_id if target else None,
            target_name=target.username if target else None,
            **kwargs,
        )

    # --------------------------
    # Sanctions
    # --------------------------
    async def _warn(self, intent: ModerationIntent) -> ActionOutcome:
        actor = intent.actor
        target_id = self._target_id(intent)
        reason = self._reason(intent)
        severity = str(intent.option("severity", DEFAULT_SEVERITY)).lower()
        if severity not in {s.value for s in Severity}:
            raise InvalidInput(f"Unknown severity: {severity}")
        timeout_minutes = intent.option("timeout")
        if timeout_minutes is not None and timeout_minutes not in ALLOWED_TIMEOUT_MINUTES:
            raise InvalidInput("Invalid timeout duration.")

        self._require_permission(actor, CommandName.WARN)
        target = await self._resolve_user(target_id)
        await self._check_immunity(intent, target_id, "warned")

        recordable = self._recordable(actor)
        # Invisible actors leave no trace with the target either.
        silent = bool(intent.option("silent", False)) or not recordable

        count: Optional[int] = None
        case_number: Optional[int] = None
        if recordable:
            count = await self.warnings.add_warning(intent.guild_id, target_id, target.username, reason, severity)
            case_number = await self.cases.create_case(
                intent.guild_id,
                CaseType.WARN,
                target_id,
                target.username,
                actor.user_id,
                actor.display_name,
                reason,
                severity=severity,
                duration=timeout_minutes,
                user_avatar=target.avatar_url,
                moderator_avatar=actor.avatar_url,
            )
        else:
            logger.debug("[DISPATCHER] Invisible actor %s warned %s; nothing recorded", actor.user_id, target_id)

        event = self._event(
            EventKind.WARN,
            intent,
            target,
            reason=reason,
            case_number=case_number,
            fields={"severity": severity, "count": count},
        )

        outcome = ActionOutcome(
            title="Warning Issued",
            message=f"Successfully warned **{target.username}**",
            case_number=case_number,
            recorded=recordable,
            target=target,
            details={"severity": severity, "count": count},
        )

        if silent:
            outcome.details["dm"] = "silent"
        else:
            dm_sent = await self.platform.send_direct_message(target_id, event)
            outcome.details["dm"] = "sent" if dm_sent else "failed"
            if not dm_sent:
                outcome.warnings.append("Could not send DM (user may have DMs disabled)")

        if timeout_minutes:
            try:
                await self.platform.timeout(intent.guild_id, target_id, timeout_minutes, reason)
            except ExternalActionFailure as exc:
                logger.warning("[DISPATCHER] Warn timeout for %s failed: %s", target_id, exc.reason)
                outcome.warnings.append(f"Timeout could not be applied: {exc.reason}")
            else:
                event.fields["timeout"] = format_minutes(timeout_minutes)
                outcome.details["timeout"] = format_minutes(timeout_minutes)

        await self._log(intent, event)
        return outcome

    async def _timeout(self, intent: ModerationIntent) -> ActionOutcome:
        actor = intent.actor
        target_id = self._target_id(intent)
        reason = self._reason(intent)
        minutes = intent.option("duration")
        if minutes not in ALLOWED_TIMEOUT_MINUTES:
            raise InvalidInput("Invalid timeout duration.")

        self._require_permission(actor, CommandName.TIMEOUT)
        target = await self._resolve_user(target_id)
        await self._check_immunity(intent, target_id, "timed out")

        await self.platform.timeout(intent.guild_id, target_id, minutes, reason)

        case_number = await self._record_case(intent, CaseType.TIMEOUT, target, reason, duration=minutes)
        await self._log(
            intent,
            self._event(
                EventKind.TIMEOUT,
                intent,
                target,
                reason=reason,
                case_number=case_number,
                fields={"duration": format_minutes(minutes)},
            ),
        )
        return ActionOutcome(
            title="Member Timed Out",
            message=f"Successfully timed out **{target.username}** for {format_minutes(minutes)}",
            case_number=case_number,
            recorded=self._recordable(actor),
            target=target,
            details={"duration": format_minutes(minutes)},
        )

    async def _kick(self, intent: ModerationIntent) -> ActionOutcome:
        actor = intent.actor
        target_id = self._target_id(intent)
        reason = self._reason(intent)

        self._require_permission(actor, CommandName.KICK)
        target = await self._resolve_user(target_id)
        await self._check_immunity(intent, target_id, "kicked")

        await self.platform.kick(intent.guild_id, target_id, reason)

        case_number = await self._record_case(intent, CaseType.KICK, target, reason)
        await self._log(intent, self._event(EventKind.KICK, intent, target, reason=reason, case_number=case_number))
        return ActionOutcome(
            title="Member Kicked",
            message=f"Successfully kicked **{target.username}** from the server",
            case_number=case_number,
            recorded=self._recordable(actor),
            target=target,
        )

    async def _ban(self, intent: ModerationIntent) -> ActionOutcome:
        actor = intent.actor
        target_id = self._target_id(intent)
        reason = self._reason(intent)
        hackban = bool(intent.option("hackban", False))
        delete_days = int(intent.option("delete_days", 0))
        if not 0 <= delete_days <= MAX_BAN_DELETE_DAYS:
            raise InvalidInput(f"delete_days must be between 0 and {MAX_BAN_DELETE_DAYS}.")

        self._require_staff(actor)
        target = await self._resolve_user(target_id, required=False)
        if not hackban:
            await self._check_immunity(intent, target_id, "banned")

        permission = CommandName.HACKBAN if hackban else CommandName.BAN
        used_code = await self._authorize_privileged(intent, permission, "ban")

        await self.platform.ban(intent.guild_id, target_id, reason, delete_days)

        case_type = CaseType.HACKBAN if hackban else CaseType.BAN
        case_number = await self._record_case(intent, case_type, target, reason, duration=delete_days)
        await self._log(
            intent,
            self._event(
                EventKind.HACKBAN if hackban else EventKind.BAN,
                intent,
                target,
                reason=reason,
                case_number=case_number,
                fields={"delete_days": delete_days, "override_code_used": used_code},
            ),
        )
        return ActionOutcome(
            title="Member Hackbanned" if hackban else "Member Banned",
            message=f"Successfully banned **{target.username}**",
            case_number=case_number,
            recorded=self._recordable(actor),
            target=target,
            details={"delete_days": delete_days, "override_code_used": used_code},
        )

    async def _unban(self, intent: ModerationIntent) -> ActionOutcome:
        actor = intent.actor
        target_id: Optional[str] = None
        if intent.target:
            target_id = self._target_id(intent)
        reason = (intent.option("reason") or "").strip() or "No reason provided"

        used_code = await self._authorize_privileged(intent, CommandName.BAN, "unban")

        if target_id is None:
            bans = list(await self.platform.fetch_bans(intent.guild_id))
            if not bans:
                return ActionOutcome(title="Banned Users List", message="No users are currently banned.")
            lines = [f"**{ban.username}** (`{ban.user_id}`)" for ban in bans[:BAN_LIST_LIMIT]]
            return ActionOutcome(
                title="Banned Users List",
                message=f"**Total Banned Users: {len(bans)}**\n\n" + "\n".join(lines),
                details={"total": len(bans), "shown": min(len(bans), BAN_LIST_LIMIT)},
            )

        await self.platform.unban(intent.guild_id, target_id, reason)

        target = await self._resolve_user(target_id, required=False)
        await self._log(
            intent,
            self._event(EventKind.UNBAN, intent, target, reason=reason, fields={"override_code_used": used_code}),
        )
        return ActionOutcome(
            title="Member Unbanned",
            message=f"Successfully unbanned **{target.username}**",
            recorded=self._recordable(actor),
            target=target,
            details={"override_code_used": used_code},
        )

    async def _record_case(
        self,
        intent: ModerationIntent,
        case_type: CaseType,
        target: UserRef,
        reason: str,
        duration: Optional[int] = None,
    ) -> Optional[int]:
        actor = intent.actor
        if not self._recordable(actor):
            logger.debug("[DISPATCHER] %s by invisible actor %s not recorded", case_type, actor.user_id)
            return None
        return await self.cases.create_case(
            intent.guild_id,
            case_type,
            target.user_id,
            target.username,
            actor.user_id,
            actor.display_name,
            reason,
            duration=duration,
            user_avatar=target.avatar_url,
            moderator_avatar=actor.avatar_url,
        )

    # --------------------------
    # Ledger maintenance
    # --------------------------
    async def _case(self, intent: ModerationIntent) -> ActionOutcome:
        number = intent.option("number")
        user_id = parse_target_id(intent.target) if intent.target else None
        severity = intent.option("severity")
        if number is None and user_id is None and not severity:
            raise InvalidInput("Please provide **case number**, **user**, or **severity**.")

        self._require_permission(intent.actor, CommandName.CASE)

        if number is not None:
            found = await self.cases.find_by_number(intent.guild_id, int(number))
            if found is None:
                raise NotFound(f"No case found with number **#{number}** in this server.")
            return ActionOutcome(title=f"Case #{found.case_number}", message=found.reason, cases=[found])

        if user_id is not None:
            results = await self.cases.find_by_user(intent.guild_id, user_id)
            if not results:
                raise NotFound(f"No cases found for **{user_id}** in this server.")
            title = f"Cases for {results[-1].username}"
        else:
            results = await self.cases.find_by_severity(intent.guild_id, severity)
            if not results:
                raise NotFound(f"No **{severity}** severity cases found in this server.")
            title = f"{str(severity).upper()} Severity Cases"

        return ActionOutcome(
            title=title,
            message=f"{len(results)} case(s) found",
            cases=results[:CASE_RESULTS_LIMIT],
            details={"total": len(results)},
        )

    async def _clear_warnings(self, intent: ModerationIntent) -> ActionOutcome:
        target_id = self._target_id(intent)
        self._require_permission(intent.actor, CommandName.CLEAR_WARNINGS)
        target = await self._resolve_user(target_id, required=False)

        cleared = await self.warnings.clear_warnings(intent.guild_id, target_id)
        if cleared is None:
            raise NotFound(f"**{target.username}** has no warnings to clear.")

        await self._log(intent, self._event(EventKind.CLEAR_WARNINGS, intent, target, fields={"cleared": cleared}))
        return ActionOutcome(
            title="Warnings Cleared",
            message=f"Successfully cleared all warnings for **{target.username}**",
            recorded=self._recordable(intent.actor),
            target=target,
            details={"cleared": cleared},
        )

    async def _delete_case(self, intent: ModerationIntent) -> ActionOutcome:
        number = intent.option("number")
        if number is None or int(number) < 1:
            raise InvalidInput("Please provide a valid case number.")
        number = int(number)
        revert = bool(intent.option("revert_warn", False))

        self._require_permission(intent.actor, CommandName.DELETE_CASE)

        deleted = await self.cases.delete_case(intent.guild_id, number)
        if deleted is None:
            raise NotFound(f"Case #{number} does not exist or has already been deleted.")

        outcome = ActionOutcome(
            title="Case Deleted",
            message=f"**Case #{number}** has been permanently deleted.",
            case_number=number,
            recorded=self._recordable(intent.actor),
            cases=[deleted],
        )
        if revert:
            if deleted.type is not CaseType.WARN:
                outcome.details["revert"] = "not_warn"
                outcome.warnings.append("Only WARN cases can have warnings reverted")
            elif await self.warnings.revert_warning(intent.guild_id, deleted.user_id):
                outcome.details["revert"] = "reverted"
            else:
                outcome.details["revert"] = "nothing"
                outcome.warnings.append("User had no warnings to revert")

        await self._log(
            intent,
            self._event(
                EventKind.DELETE_CASE,
                intent,
                UserRef(deleted.user_id, deleted.username),
                reason=deleted.reason,
                case_number=number,
                fields={"type": deleted.type.value, "revert": outcome.details.get("revert")},
            ),
        )
        return outcome

    # --------------------------
    # Override codes
    # --------------------------
    async def _generate_ban_code(self, intent: ModerationIntent) -> ActionOutcome:
        actor = intent.actor
        self._require_staff(actor)
        if not self.resolver.can_view_override_codes(actor.role_ids, actor.user_id, self.max_viewer_level):
            raise AuthorizationDenied("Only Trial Moderator rank and above can view override codes.")

        recordable = self._recordable(actor)
        if recordable and self.code_channel_id is None:
            raise NotFound("Could not find the override code channel.")

        existing = await self.codes.find_unused()
        if existing is not None:
            code, generated = existing.code, False
        else:
            code = await self.codes.generate(actor.display_name, actor.user_id)
            generated = True

        if not recordable:
            logger.debug("[DISPATCHER] Invisible actor %s viewed an override code", actor.user_id)
            return ActionOutcome(
                title="Ban Override Code",
                message=f"Override code: `{code}` (not posted publicly).",
                recorded=False,
                details={"code": code, "generated": generated},
            )

        event = self._event(EventKind.CODE_GENERATED, intent, fields={"code": code, "generated": generated})
        await self.sink.send(self.code_channel_id, event)
        if not generated:
            await self.codes.mark_sent(code)
        await self._notify(self.log_channel_id, event)

        return ActionOutcome(
            title="Ban Override Code",
            message=f"Override code has been sent to <#{self.code_channel_id}>",
            details={"generated": generated},
        )

    async def is_generator_invisible(self, code: OverrideCode, guild_id: Optional[str]) -> bool:
        """Whether ``code`` was minted for an override-only (invisible) actor."""
        if not code.generated_by_id or not self.resolver.is_overridden(code.generated_by_id):
            return False
        if guild_id is None:
            return True
        try:
            role_ids = await self.platform.fetch_member_role_ids(guild_id, code.generated_by_id)
        except ExternalActionFailure as exc:
            logger.warning("[DISPATCHER] Could not look up roles of %s: %s", code.generated_by_id, exc.reason)
            return True
        return not role_ids or not self.resolver.has_staff_role(role_ids)

    async def disclose_pending_codes(self, guild_id: Optional[str], now: Optional[int] = None) -> List[str]:
        """Run the disclosure sweep against the code channel."""

        async def publish(code: OverrideCode) -> None:
            if self.code_channel_id is None:
                raise ExternalActionFailure("disclose override code", "code channel is not configured")
            await self.sink.send(
                self.code_channel_id,
                ModerationEvent(
                    kind=EventKind.CODE_DISCLOSED,
                    guild_id=guild_id,
                    actor_name=code.generated_by,
                    actor_id=code.generated_by_id,
                    fields={"code": code.code, "generated_at": code.generated_at},
                ),
            )

        async def is_invisible(code: OverrideCode) -> bool:
            return await self.is_generator_invisible(code, guild_id)

        return await self.codes.check_and_disclose_pending(
            self._clock() if now is None else now,
            publish,
            is_invisible,
        )

    # --------------------------
    # Utility commands
    # --------------------------
    async def _purge(self, intent: ModerationIntent) -> ActionOutcome:
        amount = intent.option("amount")
        if not isinstance(amount, int) or not PURGE_MIN <= amount <= PURGE_MAX:
            raise InvalidInput(f"Please provide a number between {PURGE_MIN} and {PURGE_MAX}.")
        channel_id = intent.option("channel_id")
        if channel_id is None:
            raise InvalidInput("Purge needs a channel.")
        user_id = parse_target_id(intent.target) if intent.target else None

        self._require_permission(intent.actor, CommandName.PURGE)

        deleted = await self.platform.purge(intent.guild_id, str(channel_id), amount, user_id)

        await self._log(
            intent,
            self._event(
                EventKind.PURGE,
                intent,
                UserRef(user_id, user_id) if user_id else None,
                fields={"requested": amount, "deleted": deleted, "channel_id": str(channel_id)},
            ),
        )
        suffix = f" from <@{user_id}>" if user_id else ""
        return ActionOutcome(
            title="Messages Purged",
            message=f"Successfully deleted **{deleted}** message(s){suffix}",
            recorded=self._recordable(intent.actor),
            details={"requested": amount, "deleted": deleted},
        )

    async def _help(self, intent: ModerationIntent) -> ActionOutcome:
        self._require_permission(intent.actor, CommandName.HELP)
        return ActionOutcome(
            title="Moderation Commands",
            message="Role requirements depend on your staff role.",
            details={"commands": [HELP_ENTRIES[command] for command in SLASH_COMMANDS]},
        )
