"""
Embed builders for moderation replies, log messages and DMs.

All Discord rendering lives here so that the dispatcher only ever produces
plain :class:`ModerationEvent` / :class:`ActionOutcome` records.
"""

from __future__ import annotations

import datetime
from typing import Optional

import discord

from casekeeper.datatypes.ledger_datatypes import Case
from casekeeper.moderation.intents import ActionOutcome, EventKind, ModerationEvent

SEVERITY_EMOJI = {"minor": "⚠️", "moderate": "🔶", "severe": "🔴"}
SEVERITY_COLORS = {"minor": 0xFFAA00, "moderate": 0xFF6600, "severe": 0xFF0000}
TYPE_EMOJI = {"warn": "⚠️", "timeout": "⏱️", "kick": "👢", "ban": "🔨", "hackban": "🔨"}

EVENT_TITLES = {
    EventKind.WARN: "Member Warned",
    EventKind.TIMEOUT: "⏱️ Member Timed Out",
    EventKind.KICK: "👢 Member Kicked",
    EventKind.BAN: "🔨 Member Banned",
    EventKind.HACKBAN: "🔨 Member Hackbanned",
    EventKind.UNBAN: "✅ Member Unbanned",
    EventKind.CLEAR_WARNINGS: "✅ Warnings Cleared",
    EventKind.DELETE_CASE: "🗑️ Case Deleted",
    EventKind.PURGE: "🗑️ Messages Purged",
    EventKind.CODE_USED: "🔑 Override Code Used",
    EventKind.CODE_GENERATED: "🔑 Ban Override Code",
    EventKind.CODE_DISCLOSED: "🔑 New Ban Override Code",
}

EVENT_COLORS = {
    EventKind.TIMEOUT: discord.Color.orange(),
    EventKind.KICK: discord.Color.orange(),
    EventKind.BAN: discord.Color.red(),
    EventKind.HACKBAN: discord.Color.red(),
    EventKind.UNBAN: discord.Color.green(),
    EventKind.CLEAR_WARNINGS: discord.Color.green(),
    EventKind.DELETE_CASE: discord.Color.red(),
    EventKind.PURGE: discord.Color.green(),
    EventKind.CODE_USED: discord.Color.red(),
    EventKind.CODE_GENERATED: discord.Color.purple(),
    EventKind.CODE_DISCLOSED: discord.Color.purple(),
}

# Discord rejects field values longer than this.
FIELD_LIMIT = 1024


def _clip(text: str, limit: int = FIELD_LIMIT) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _case_label(case_number: Optional[int]) -> str:
    return f"#{case_number}" if case_number else "N/A"


def _severity_label(severity: Optional[str]) -> str:
    if not severity:
        return "N/A"
    return f"{SEVERITY_EMOJI.get(severity, '')} {severity.upper()}".strip()


def build_event_embed(event: ModerationEvent) -> discord.Embed:
    """Render a log or code-channel notification."""
    severity = event.fields.get("severity")
    if event.kind is EventKind.WARN:
        color = discord.Color(SEVERITY_COLORS.get(severity, 0xFF6600))
        title = f"{SEVERITY_EMOJI.get(severity, '⚠️')} {EVENT_TITLES[event.kind]}"
    else:
        color = EVENT_COLORS.get(event.kind, discord.Color.blurple())
        title = EVENT_TITLES.get(event.kind, str(event.kind))

    embed = discord.Embed(title=title, color=color, timestamp=datetime.datetime.now(datetime.timezone.utc))

    if event.target_id:
        embed.add_field(name="Member", value=f"{event.target_name} ({event.target_id})", inline=True)
    if event.case_number:
        embed.add_field(name="Case #", value=_case_label(event.case_number), inline=True)
    if event.actor_name and event.kind is not EventKind.CODE_DISCLOSED:
        label = "Used By" if event.kind is EventKind.CODE_USED else "Moderator"
        embed.add_field(name=label, value=event.actor_name, inline=True)

    fields = event.fields
    if event.kind is EventKind.WARN:
        embed.add_field(name="Severity", value=_severity_label(severity), inline=True)
        if fields.get("timeout"):
            embed.add_field(name="Timeout", value=fields["timeout"], inline=True)
    if fields.get("duration"):
        embed.add_field(name="Duration", value=str(fields["duration"]), inline=True)
    if fields.get("delete_days"):
        embed.add_field(name="Messages Deleted", value=f"{fields['delete_days']} day(s)", inline=True)
    if fields.get("override_code_used"):
        embed.add_field(name="🔑 Override Code", value="Used override code (new code generated)", inline=True)
    if "cleared" in fields:
        embed.add_field(name="Warnings Removed", value=str(fields["cleared"]), inline=True)
    if event.kind is EventKind.PURGE:
        embed.add_field(name="Requested Amount", value=str(fields.get("requested")), inline=True)
        embed.add_field(name="Actually Deleted", value=str(fields.get("deleted")), inline=True)
        embed.add_field(name="Channel", value=f"<#{fields.get('channel_id')}>", inline=True)
    if event.kind is EventKind.DELETE_CASE:
        embed.add_field(name="Type", value=str(fields.get("type", "")).upper(), inline=True)
        if fields.get("revert") == "reverted":
            embed.add_field(name="✅ Warning Reverted", value="Warning count decreased by 1", inline=False)

    if event.kind in (EventKind.CODE_USED, EventKind.CODE_GENERATED, EventKind.CODE_DISCLOSED):
        embed.add_field(name="Override Code", value=f"`{fields.get('code')}`", inline=False)
        if event.kind is EventKind.CODE_USED:
            embed.description = f"An override code has been consumed for a {fields.get('action', 'ban')} action."
            embed.add_field(name="Originally Generated By", value=str(fields.get("generated_by")), inline=True)
            embed.set_footer(text="A new code will be generated and sent after 24 hours")
        else:
            embed.add_field(name="Valid For", value="One-time use only", inline=True)
            embed.add_field(name="Command", value="Ban", inline=True)
            if event.kind is EventKind.CODE_DISCLOSED:
                embed.add_field(name="Generated For", value=str(event.actor_name), inline=True)
            embed.set_footer(text="A new code will be automatically generated after this one is used")

    if event.reason:
        embed.add_field(name="Reason", value=_clip(event.reason), inline=False)
    if event.target_id:
        embed.set_footer(text=f"User ID: {event.target_id}")
    return embed


def build_dm_embed(event: ModerationEvent, guild_name: str) -> discord.Embed:
    """Render the DM sent to a warned user."""
    severity = event.fields.get("severity") or "moderate"
    embed = discord.Embed(
        title=f"{SEVERITY_EMOJI.get(severity, '⚠️')} You have been warned",
        description=f"You have received a **{severity}** warning in **{guild_name}**.",
        color=discord.Color(SEVERITY_COLORS.get(severity, 0xFF6600)),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="Reason", value=_clip(event.reason or "No reason provided"), inline=False)
    embed.add_field(name="Case Number", value=_case_label(event.case_number), inline=True)
    embed.add_field(name="Severity", value=severity.upper(), inline=True)
    count = event.fields.get("count")
    embed.add_field(name="Warning Count", value=str(count) if count is not None else "N/A", inline=True)
    if event.fields.get("timeout"):
        embed.add_field(name="Timeout", value=event.fields["timeout"], inline=True)
    embed.set_footer(text="Please follow the server rules to avoid further warnings.")
    return embed


def _case_line(case: Case) -> str:
    return f"**#{case.case_number}** {TYPE_EMOJI.get(case.type.value, '📝')} {case.username}: {case.reason} ({case.severity or 'None'})"


def build_case_embed(case: Case) -> discord.Embed:
    embed = discord.Embed(
        title=f"📁 Case #{case.case_number}",
        color=discord.Color.blue(),
        timestamp=datetime.datetime.fromtimestamp(case.timestamp / 1000, tz=datetime.timezone.utc),
    )
    embed.add_field(name="Type", value=case.type.value.upper(), inline=True)
    embed.add_field(name="User", value=case.username, inline=True)
    embed.add_field(name="Moderator", value=case.moderator_name, inline=True)
    embed.add_field(name="Severity", value=case.severity or "None", inline=True)
    if case.duration:
        unit = "day(s)" if case.type.value in ("ban", "hackban") else "minute(s)"
        embed.add_field(name="Duration", value=f"{case.duration} {unit}", inline=True)
    embed.add_field(name="Reason", value=_clip(case.reason or "No reason provided"), inline=False)
    embed.set_thumbnail(url=case.user_avatar)
    return embed


def build_outcome_embed(outcome: ActionOutcome) -> discord.Embed:
    """Render the reply to the invoking moderator."""
    if len(outcome.cases) == 1 and outcome.title.startswith("Case #"):
        return build_case_embed(outcome.cases[0])

    embed = discord.Embed(
        title=outcome.title,
        description=outcome.message,
        color=discord.Color.green(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )

    if outcome.title == "Moderation Commands":
        embed.color = discord.Color.blue()
        for name, description in outcome.details.get("commands", []):
            embed.add_field(name=name, value=description, inline=False)
        return embed

    if outcome.cases:
        embed.color = discord.Color.blue()
        lines = "\n".join(_case_line(case) for case in outcome.cases)
        embed.add_field(name="Cases", value=_clip(lines), inline=False)
        total = outcome.details.get("total")
        if total and total > len(outcome.cases):
            embed.set_footer(text=f"Showing {len(outcome.cases)} of {total}")

    if outcome.case_number:
        embed.add_field(name="Case Number", value=_case_label(outcome.case_number), inline=True)
    elif not outcome.recorded:
        embed.add_field(name="Case Number", value="N/A", inline=True)

    details = outcome.details
    if "severity" in details:
        embed.add_field(name="Severity", value=_severity_label(details["severity"]), inline=True)
    if "count" in details:
        count = details["count"]
        embed.add_field(name="Warning Count", value=f"#{count}" if count is not None else "N/A", inline=True)
    if details.get("timeout"):
        embed.add_field(name="⏱️ Timeout Applied", value=details["timeout"], inline=True)
    if details.get("duration"):
        embed.add_field(name="Duration", value=details["duration"], inline=True)
    if details.get("dm") == "silent":
        embed.add_field(name="🔇 Silent Mode", value="No DM sent to user", inline=False)
    elif details.get("dm") == "sent":
        embed.add_field(name="✅ DM Status", value="DM sent successfully", inline=False)
    if details.get("revert") == "reverted":
        embed.add_field(name="✅ Warning Reverted", value="Warning count decreased by 1", inline=False)
    if details.get("override_code_used"):
        embed.add_field(name="🔑 Override Code", value="Used override code (new code generated)", inline=True)

    for warning in outcome.warnings:
        embed.add_field(name="⚠️ Note", value=_clip(warning), inline=False)

    if outcome.target is not None:
        if outcome.target.avatar_url:
            embed.set_thumbnail(url=outcome.target.avatar_url)
        embed.set_footer(text=f"User ID: {outcome.target.user_id}")
    return embed


def build_error_embed(message: str, title: str = "❌ Error") -> discord.Embed:
    return discord.Embed(
        title=title,
        description=message,
        color=discord.Color.red(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
