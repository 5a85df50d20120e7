"""
Wiring of the moderation core for a running bot.

:func:`build_services` constructs every long-lived object once; the cogs
receive the resulting :class:`BotServices` instead of reaching for globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import discord

from casekeeper.bot.discord_platform import DiscordNotificationSink, DiscordPlatform
from casekeeper.configuration.app_configuration import AppConfig
from casekeeper.database.db_connection import ConnectionManager
from casekeeper.database.document_store import DocumentStore
from casekeeper.ledger.case_export import CaseExporter
from casekeeper.ledger.case_ledger import CaseLedger
from casekeeper.ledger.override_codes import OverrideCodeLedger
from casekeeper.ledger.warning_ledger import WarningLedger
from casekeeper.moderation.dispatcher import ModerationDispatcher
from casekeeper.permissions.resolver import RoleResolver
from casekeeper.scheduler.disclosure_scheduler import DisclosureScheduler
from casekeeper.util.logger import get_logger

logger = get_logger("bot_services")


@dataclass
class BotServices:
    bot: discord.Bot
    config: AppConfig
    connection: ConnectionManager
    store: DocumentStore
    resolver: RoleResolver
    warnings: WarningLedger
    cases: CaseLedger
    codes: OverrideCodeLedger
    dispatcher: ModerationDispatcher
    scheduler: DisclosureScheduler

    async def open(self) -> None:
        """Open the database and create the schema."""
        await self.connection.open(self.config.database_path)
        await self.store.initialize()

    async def close(self) -> None:
        await self.scheduler.shutdown()
        await self.connection.close()


def sweep_guild_id(bot: discord.Bot, config: AppConfig) -> Optional[str]:
    """Guild whose member roles decide code visibility: the configured home guild, else the first one."""
    if config.home_guild_id:
        return str(config.home_guild_id)
    if bot.guilds:
        return str(bot.guilds[0].id)
    return None


def build_services(bot: discord.Bot, config: AppConfig) -> BotServices:
    """Construct the moderation core around ``bot``.

    Raises:
        ValueError: If the staff-role or override tables in the config are invalid.
    """
    resolver = RoleResolver(config.permission_config)
    connection = ConnectionManager()
    store = DocumentStore(connection)
    warnings = WarningLedger(store)
    cases = CaseLedger(store, CaseExporter(config.case_export_dir))
    codes = OverrideCodeLedger(store, disclosure_delay_ms=int(config.disclosure_delay_hours * 60 * 60 * 1000))
    dispatcher = ModerationDispatcher(
        resolver,
        warnings,
        cases,
        codes,
        DiscordPlatform(bot),
        DiscordNotificationSink(bot),
        log_channel_id=config.log_channel_id,
        code_channel_id=config.override_code_channel_id,
        max_viewer_level=config.max_viewer_level,
    )

    async def run_disclosure_sweep() -> None:
        await dispatcher.disclose_pending_codes(sweep_guild_id(bot, config))

    services = BotServices(
        bot=bot,
        config=config,
        connection=connection,
        store=store,
        resolver=resolver,
        warnings=warnings,
        cases=cases,
        codes=codes,
        dispatcher=dispatcher,
        scheduler=DisclosureScheduler(run_disclosure_sweep, lambda: config.sweep_interval_seconds),
    )
    logger.info("[BOT SERVICES] Moderation services constructed")
    return services
