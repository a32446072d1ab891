from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Logger(Protocol):
    def log_debug(self, message: str) -> None: ...

    def log_info(self, message: str) -> None: ...

    def log_warning(self, message: str) -> None: ...

    def log_error(self, message: str) -> None: ...

    def log_price_update(self, position_id: str, question: str, price: float, pnl_percent: float, pnl_absolute: float) -> None: ...

    def log_alert_triggered(self, position_id: str, kind: str, price: float, level: float) -> None: ...

    def log_alert_latched(self, position_id: str, kind: str) -> None: ...

    def log_cycle_summary(self, total: int, updated: int, alerts_fired: int, elapsed: float) -> None: ...


def _ts() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _usd(x: float) -> str:
    return f"${x:,.2f}"


def _pct(x: float) -> str:
    return "n/a" if math.isnan(x) else f"{x:+.2f}%"


@dataclass
class ConsoleLogger:
    log_dir: str = "logs"
    log_file: str = "tracker.log"
    log_level: str = "info"
    show_header: bool = True

    console: Console = field(default_factory=lambda: Console(), init=False)
    file_logger: logging.Logger = field(default_factory=lambda: logging.getLogger("tracker"), init=False)
    _level: int = field(default=logging.INFO, init=False)

    def __post_init__(self) -> None:
        os.makedirs(self.log_dir, exist_ok=True)
        self._level = _LEVELS.get(self.log_level.strip().lower(), logging.INFO)

        self.file_logger.setLevel(self._level)
        self.file_logger.propagate = False
        self.file_logger.handlers.clear()

        fh = logging.FileHandler(os.path.join(self.log_dir, self.log_file), encoding="utf-8")
        fh.setLevel(self._level)
        fh.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        self.file_logger.addHandler(fh)

        if self.show_header:
            self._print_header()

    def _print_header(self) -> None:
        title = Text("POLYMARKET POSITION TRACKER", style="bold cyan")
        self.console.print(Panel(title, expand=False, border_style="cyan"))

    def _log(self, message: str, *, level: int = logging.INFO, style: Optional[str] = None) -> None:
        if level < self._level:
            return

        prefix = f"[{_ts()}] "
        if style:
            self.console.print(prefix + message, style=style)
        else:
            self.console.print(prefix + message)
        self.file_logger.log(level, message)

    def log_price_update(self, position_id: str, question: str, price: float, pnl_percent: float, pnl_absolute: float) -> None:
        style = "green" if pnl_absolute >= 0 else "red"
        self._log(
            f"📈 {question} [{position_id[:8]}] | price={price:.4f} | PnL={_pct(pnl_percent)} ({_usd(pnl_absolute)})",
            style=style,
        )

    def log_alert_triggered(self, position_id: str, kind: str, price: float, level: float) -> None:
        label = "TAKE PROFIT" if kind == "take_profit" else "STOP LOSS"
        self._log(
            f"🚨 {label} hit | #{position_id[:8]} price={price:.4f} threshold={level:.4f}",
            style="bold yellow",
        )

    def log_alert_latched(self, position_id: str, kind: str) -> None:
        self._log(f"🔒 Alert latched | #{position_id[:8]} {kind}", style="bold green")

    def log_cycle_summary(self, total: int, updated: int, alerts_fired: int, elapsed: float) -> None:
        self._log(
            f"📌 POLL CYCLE | priced={updated}/{total} alerts={alerts_fired} time={elapsed:.2f}s",
            style="bold cyan",
        )

    def log_debug(self, message: str) -> None:
        self._log(message, level=logging.DEBUG, style="dim")

    def log_info(self, message: str) -> None:
        self._log(message)

    def log_warning(self, message: str) -> None:
        self._log(f"⚠️ {message}", level=logging.WARNING, style="yellow")

    def log_error(self, message: str) -> None:
        self._log(f"❌ {message}", level=logging.ERROR, style="bold red")
