"""Interactive terminal chat built on the client state layer."""

from __future__ import annotations

import asyncio
import getpass
import logging
from typing import Awaitable, Callable

from serenia_client.client import SereniaClient
from serenia_client.config import get_settings
from serenia_client.domain.models import Message
from serenia_client.i18n import I18nService, describe_error, describe_outcome
from serenia_client.logging import configure_logging, logger
from serenia_client.services.exceptions import ServiceError

HELP_TEXT = """Commands:
  /login <email>      sign in
  /more               show older messages
  /quota              show usage
  /upgrade <PLAN>     print a checkout link (PLUS or MAX)
  /paid               confirm a completed checkout
  /delete             delete all conversations
  /stats              admin dashboard (admins only)
  /logout             sign out
  /quit               exit
Anything else is sent to the assistant."""

Prompt = Callable[[str], Awaitable[str]]


async def _prompt(text: str) -> str:
    return await asyncio.to_thread(input, text)


def _render(messages: tuple[Message, ...], client: SereniaClient) -> str:
    lines = []
    for message in messages:
        marker = " (!)" if client.pipeline.is_failed(message) else ""
        lines.append(f"[{message.role}]{marker} {message.content}")
    return "\n".join(lines)


class ChatSession:
    def __init__(
        self,
        client: SereniaClient,
        i18n: I18nService,
        *,
        prompt: Prompt = _prompt,
        output: Callable[[str], None] = print,
    ) -> None:
        self.client = client
        self.i18n = i18n
        self.prompt = prompt
        self.output = output

    async def run(self) -> None:
        if await self._safe(self.client.bootstrap()):
            self.output(_render(self.client.conversation.messages(), self.client))
        else:
            self.output("Not signed in. Use /login <email>.")
        self.output(HELP_TEXT)
        while True:
            line = (await self.prompt("> ")).strip()
            if line in {"/quit", "/exit"}:
                return
            await self.handle(line)

    async def handle(self, line: str) -> None:
        command, _, argument = line.partition(" ")
        argument = argument.strip()
        if command == "/login":
            await self._login(argument)
        elif command == "/more":
            if self.client.conversation.expand_window():
                self.output(_render(self.client.conversation.messages(), self.client))
            else:
                self.output("No older messages.")
        elif command == "/quota":
            self._show_quota()
        elif command == "/upgrade":
            url = await self._safe(self.client.subscriptions.create_checkout_session(argument.upper()))
            if url:
                self.output(url)
        elif command == "/paid":
            self.client.handle_checkout_redirect({"checkout": "success"})
            outcome = await self.client.poller.wait()
            if outcome is not None:
                self.output(describe_outcome(outcome, self.i18n))
        elif command == "/stats":
            await self._show_stats()
        elif command == "/delete":
            await self._safe(self.client.delete_conversations())
        elif command == "/logout":
            self.client.logout()
            self.output("Signed out.")
        elif command.startswith("/"):
            self.output(HELP_TEXT)
        else:
            reply = await self._safe(self.client.send(line))
            if reply is not None:
                self.output(f"[assistant] {reply.content}")

    async def _login(self, email: str) -> None:
        password = await asyncio.to_thread(getpass.getpass, "Password: ")
        user = await self._safe(self.client.auth.login(email, password))
        if user is None:
            return
        self.output(f"Welcome {user.full_name}.")
        await self._safe(self.client.conversation.load_history())
        await self._safe(self.client.subscriptions.refresh())
        self.output(_render(self.client.conversation.messages(), self.client))

    async def _show_stats(self) -> None:
        user = self.client.session.user()
        if user is None or not user.is_admin:
            self.output("Admin access required.")
            return
        dashboard = await self._safe(self.client.admin.load_dashboard())
        if dashboard is None:
            return
        self.output(
            f"users {dashboard.users.total_users} "
            f"(+{dashboard.users.new_users_last7_days} this week) "
            f"| messages today {dashboard.messages.messages_today} "
            f"| active {dashboard.engagement.active_users}"
        )

    def _show_quota(self) -> None:
        quota = self.client.quota
        self.output(
            f"{quota.plan_name()}: messages {quota.messages_usage_percent():.0f}% "
            f"| tokens {quota.tokens_usage_percent():.0f}%"
        )
        if quota.is_quota_low():
            self.output(
                self.i18n.gettext(
                    "quota.low",
                    messages=quota.messages_remaining(),
                    tokens=quota.tokens_remaining(),
                )
            )

    async def _safe(self, awaitable: Awaitable):
        try:
            return await awaitable
        except (ServiceError, ValueError) as exc:
            self.output(describe_error(exc, self.i18n))
            return None


async def main() -> None:
    configure_logging(logging.WARNING, json_output=False)
    settings = get_settings()
    i18n = I18nService(default_locale=settings.default_language)
    logger.info("chat_client_starting", environment=settings.environment)
    async with SereniaClient(settings) as client:
        await ChatSession(client, i18n).run()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
