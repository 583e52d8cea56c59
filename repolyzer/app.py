"""The interactive event loop.

One thread owns the Session: it waits on a single queue fed by the key
reader and by finished Commands, runs every event through
``session.update`` and repaints through ``rich.live.Live``. When nothing
arrives within a tick it synthesizes a Tick so spinners and elapsed
times keep moving. The loop never reads files itself: history, favorites
and cache statistics arrive as Messages.
"""

from __future__ import annotations

import logging
import queue

from rich.console import Console
from rich.live import Live

from .commands import CommandRunner
from .config import TICK_SECONDS
from .keys import KeyReader
from .messages import KeyPress, Resize, Tick
from .render import RenderInfo, render
from .session import AppContext, Session, start, update

log = logging.getLogger(__name__)


class App:
    """Interactive Repo-lyzer session bound to a terminal."""

    def __init__(self, ctx: AppContext, console: Console | None = None,
                 runner: CommandRunner | None = None, session: Session | None = None):
        self.ctx = ctx
        self.console = console or Console()
        self.runner = runner or CommandRunner()
        self.session = session or Session()

    def dispatch(self, event) -> None:
        self.session, commands = update(self.session, event, self.ctx)
        self.runner.submit_all(commands)

    def _render_info(self) -> RenderInfo:
        return RenderInfo(token_source=self.ctx.token_source, rate_limit=self.ctx.client.rate_limit)

    def _next_event(self):
        try:
            return self.runner.messages.get(timeout=TICK_SECONDS)
        except queue.Empty:
            return Tick()

    def _check_resize(self) -> None:
        width, height = self.console.size
        if (width, height) != (self.session.width, self.session.height):
            self.dispatch(Resize(width, height))

    def run(self) -> int:
        log.info("interactive session started")
        self.session, commands = start(self.session, self.ctx)
        self.runner.submit_all(commands)
        self._check_resize()
        try:
            with KeyReader(self.runner.messages), Live(
                render(self.session, self._render_info()),
                console=self.console,
                screen=True,
                auto_refresh=False,
            ) as live:
                while not self.session.quit:
                    try:
                        self.dispatch(self._next_event())
                        for event in self.runner.drain():
                            self.dispatch(event)
                        self._check_resize()
                    except KeyboardInterrupt:
                        self.dispatch(KeyPress("ctrl+c"))
                    live.update(render(self.session, self._render_info()), refresh=True)
        finally:
            self.runner.shutdown()
        log.info("interactive session ended")
        return 0


def run_interactive(ctx: AppContext) -> int:
    return App(ctx).run()
