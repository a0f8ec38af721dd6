"""Pygame UI shell for the Chemistry Trainer.

Two drills sit under the main menu:
- Solutions (dilution, molarity, mass/molarity conversion, mixing)
- Molar Mass (formula masses, grams to moles)

Deterministic timing/scoring/RNG/state lives in chem_trainer/* (core modules).
"""

from __future__ import annotations

import logging
import os
import random
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import RealClock
from .molar_mass import build_molar_mass_session
from .persistence import default_db_path, load_progress, record_session
from .problems import Difficulty, GameMode
from .results import ProgressTotals, SessionSummary
from .session import ChemistrySession, Phase
from .solutions import build_solutions_session

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"
WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

DISABLE_DB_ENV = "CHEM_TRAINER_DISABLE_DB"
LOG_LEVEL_ENV = "CHEM_TRAINER_LOG_LEVEL"

SessionFactory = Callable[[], ChemistrySession]


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


@dataclass(frozen=True, slots=True)
class Game:
    code: str
    title: str
    factory: Callable[[int], ChemistrySession]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _fit_label(font: pygame.font.Font, label: str, max_width: int) -> str:
    if max_width <= 0:
        return ""
    if font.size(label)[0] <= max_width:
        return label
    clipped = label
    while clipped and font.size(f"{clipped}...")[0] > max_width:
        clipped = clipped[:-1]
    return f"{clipped}..." if clipped else "..."


def _wrap(font: pygame.font.Font, text: str, max_width: int) -> list[str]:
    lines: list[str] = []
    for paragraph in text.split("\n"):
        current = ""
        for word in paragraph.split(" "):
            candidate = word if current == "" else f"{current} {word}"
            if current and font.size(candidate)[0] > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return lines


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        bg = (6, 32, 40)
        panel_bg = (10, 48, 58)
        header_bg = (16, 66, 78)
        border = (220, 244, 240)
        text_main = (236, 250, 246)
        text_muted = (176, 206, 200)
        active_bg = (240, 252, 248)
        active_text = (12, 52, 58)

        surface.fill(bg)

        frame_margin = max(10, min(26, w // 34))
        frame = pygame.Rect(
            frame_margin,
            frame_margin,
            max(260, w - frame_margin * 2),
            max(220, h - frame_margin * 2),
        )
        pygame.draw.rect(surface, panel_bg, frame)
        pygame.draw.rect(surface, border, frame, 2)

        header_h = max(34, min(52, h // 8))
        header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
        pygame.draw.rect(surface, header_bg, header)
        pygame.draw.line(surface, border, (header.x, header.bottom), (header.right, header.bottom), 1)

        title = self._title_font.render(self._title, True, text_main)
        surface.blit(title, title.get_rect(center=(frame.centerx, header.centery)))

        content_top = header.bottom + max(16, h // 30)
        content_bottom = frame.bottom - max(44, h // 12)
        list_rect = pygame.Rect(
            frame.x + max(14, w // 44),
            content_top,
            frame.w - max(28, w // 22),
            max(120, content_bottom - content_top),
        )

        item_count = max(1, len(self._items))
        gap = max(4, min(10, list_rect.h // max(10, item_count * 3)))
        row_h = max(30, min(44, (list_rect.h - gap * (item_count + 1)) // item_count))
        total_h = row_h * item_count + gap * (item_count - 1)
        y = list_rect.y + max(8, (list_rect.h - total_h) // 2)

        for idx, item in enumerate(self._items):
            row = pygame.Rect(list_rect.x + 12, y, list_rect.w - 24, row_h)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, active_bg, row)
            else:
                pygame.draw.rect(surface, (14, 58, 70), row)
                pygame.draw.rect(surface, (60, 110, 118), row, 1)

            color = active_text if selected else text_main
            label = _fit_label(self._item_font, item.label, row.w - 20)
            text = self._item_font.render(label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + gap

        footer = "Enter/Space: Select  |  Esc/Backspace: Back"
        foot = self._hint_font.render(footer, True, text_muted)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class ProgressScreen:
    def __init__(self, app: App, *, rows: list[tuple[str, ProgressTotals]] | None) -> None:
        self._app = app
        self._rows = rows
        self._small_font = pygame.font.Font(None, 26)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_RETURN):
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        surface.fill((6, 32, 40))
        title = self._app.font.render("Progress", True, (236, 250, 246))
        surface.blit(title, (40, 30))

        y = 90
        if self._rows is None:
            lines = ["Progress tracking is disabled."]
        else:
            lines = []
            for game_title, totals in self._rows:
                accuracy = 0.0 if totals.total_questions == 0 else 100.0 * totals.total_correct / totals.total_questions
                lines.append(
                    f"{game_title}: {totals.games_played} games, {totals.total_score} points, "
                    f"{totals.total_correct}/{totals.total_questions} correct ({accuracy:.0f}%), "
                    f"best streak {totals.best_streak}"
                )
        for line in lines:
            txt = self._small_font.render(line, True, (220, 236, 232))
            surface.blit(txt, (40, y))
            y += 32

        hint = self._small_font.render("Press Esc to go back.", True, (150, 176, 170))
        surface.blit(hint, (40, surface.get_height() - 60))


class SessionScreen:
    """Plays one session; the engine is reset when the screen is left."""

    _MAX_INPUT = 16

    def __init__(
        self,
        app: App,
        *,
        session_factory: SessionFactory,
        difficulty: Difficulty,
        game_mode: GameMode,
        timer_mode: bool,
        on_complete: Callable[[SessionSummary], None] | None = None,
    ) -> None:
        self._app = app
        self._session = session_factory()
        self._session.start(difficulty, game_mode, timer_mode)
        self._on_complete = on_complete
        self._reported = False
        self._input = ""

        self._small_font = pygame.font.Font(None, 26)
        self._tiny_font = pygame.font.Font(None, 20)
        self._prompt_font = pygame.font.Font(None, 32)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return

        key = event.key
        phase = self._session.phase

        if key == pygame.K_ESCAPE:
            self._leave()
            return

        if phase is Phase.COMPLETE:
            if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_BACKSPACE):
                self._leave()
            return

        if key == pygame.K_s:
            self._session.reveal_solution()
            return

        if phase is Phase.FEEDBACK:
            if key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._session.advance()
            return

        if key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            outcome = self._session.submit_answer(self._input)
            if outcome.accepted or outcome.timed_out:
                self._input = ""
            return

        if key == pygame.K_h:
            self._session.request_hint()
            return

        if key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
            return

        ch = event.unicode
        if ch and (ch.isdigit() or ch in ".,") and len(self._input) < self._MAX_INPUT:
            self._input += ch

    def _leave(self) -> None:
        self._report()
        self._session.reset()
        self._app.pop()

    def _report(self) -> None:
        if self._reported or self._session.phase is not Phase.COMPLETE:
            return
        self._reported = True
        if self._on_complete is not None:
            self._on_complete(self._session.summary())

    def render(self, surface: pygame.Surface) -> None:
        self._session.update()
        snap = self._session.snapshot()
        if snap.phase is Phase.COMPLETE:
            self._report()

        w, h = surface.get_size()
        text_main = (236, 250, 246)
        text_muted = (160, 188, 182)
        surface.fill((6, 32, 40))

        title = self._app.font.render(f"{snap.title}  ({snap.difficulty}, {snap.game_mode})", True, text_main)
        surface.blit(title, (40, 24))

        stats = (
            f"Problem {min(snap.problems_completed + 1, snap.total_problems)}/{snap.total_problems}"
            f"   Score: {snap.score}/{snap.max_score}   Streak: {snap.streak}"
        )
        if snap.time_remaining_s is not None:
            rem = int(round(snap.time_remaining_s))
            stats += f"   Time: {rem // 60:02d}:{rem % 60:02d}"
        surface.blit(self._small_font.render(stats, True, text_muted), (40, 66))

        y = 110
        for line in _wrap(self._prompt_font, snap.prompt, w - 80)[:10]:
            surface.blit(self._prompt_font.render(line, True, text_main), (40, y))
            y += 30

        y += 8
        for idx, hint in enumerate(snap.hints, start=1):
            for line in _wrap(self._small_font, f"Hint {idx}: {hint}", w - 80):
                surface.blit(self._small_font.render(line, True, (246, 220, 150)), (40, y))
                y += 24
        if snap.solution is not None:
            for line in _wrap(self._small_font, f"Solution: {snap.solution}", w - 80):
                surface.blit(self._small_font.render(line, True, (180, 220, 255)), (40, y))
                y += 24

        if snap.phase is Phase.FEEDBACK and snap.feedback:
            color = (140, 230, 150) if snap.last_correct else (250, 150, 140)
            surface.blit(self._small_font.render(snap.feedback, True, color), (40, h - 170))
            if snap.achievement:
                badge = self._small_font.render(f"Achievement: {snap.achievement}", True, (255, 214, 120))
                surface.blit(badge, (40, h - 144))

        if snap.phase is Phase.IN_PROGRESS:
            box = pygame.Rect(40, h - 120, 400, 44)
            pygame.draw.rect(surface, (14, 50, 60), box)
            pygame.draw.rect(surface, (90, 140, 146), box, 2)

            caret = "|" if (pygame.time.get_ticks() // 500) % 2 == 0 else ""
            entry = self._app.font.render(f"{self._input}{caret}", True, text_main)
            surface.blit(entry, (box.x + 10, box.y + 8))
            if snap.unit:
                surface.blit(self._small_font.render(snap.unit, True, text_muted), (box.right + 12, box.y + 12))

            if snap.error_message:
                surface.blit(self._tiny_font.render(snap.error_message, True, (250, 150, 140)), (40, h - 144))

        if snap.phase in (Phase.IN_PROGRESS, Phase.FEEDBACK):
            footer = snap.input_hint if snap.can_reveal_solution else "Type answer then Enter  |  H: hint"
            surface.blit(self._tiny_font.render(f"{footer}  |  Esc: quit", True, text_muted), (40, h - 60))


def _init_logging() -> None:
    level = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if not level:
        return
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _db_enabled() -> bool:
    return os.environ.get(DISABLE_DB_ENV, "0") != "1"


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    _init_logging()
    pygame.init()

    pygame.display.set_caption("Chemistry Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    real_clock = RealClock()

    games = (
        Game("solutions", "Solutions", lambda seed: build_solutions_session(clock=real_clock, seed=seed)),
        Game("molar_mass", "Molar Mass", lambda seed: build_molar_mass_session(clock=real_clock, seed=seed)),
    )

    def record(game: Game, summary: SessionSummary) -> None:
        if not _db_enabled():
            return
        try:
            row_id = record_session(
                db_path=default_db_path(),
                summary=summary,
                game_code=game.code,
                app_version=APP_VERSION,
            )
        except (sqlite3.Error, OSError):
            logger.exception("could not record %s session", game.code)
            return
        logger.info("recorded %s session %d (score %d)", game.code, row_id, summary.score)

    def open_session(game: Game, difficulty: Difficulty, game_mode: GameMode, timer_mode: bool) -> None:
        seed = _new_seed()
        app.push(
            SessionScreen(
                app,
                session_factory=lambda: game.factory(seed),
                difficulty=difficulty,
                game_mode=game_mode,
                timer_mode=timer_mode,
                on_complete=lambda summary: record(game, summary),
            )
        )

    def difficulty_menu(game: Game, label: str, game_mode: GameMode, timer_mode: bool) -> MenuScreen:
        items = [
            MenuItem(d.value.capitalize(), lambda d=d: open_session(game, d, game_mode, timer_mode))
            for d in Difficulty
        ]
        items.append(MenuItem("Back", app.pop))
        return MenuScreen(app, f"{game.title}: {label}", items)

    def game_menu(game: Game) -> MenuScreen:
        modes = (
            ("Competition (timed)", GameMode.COMPETITION, True),
            ("Competition", GameMode.COMPETITION, False),
            ("Practice", GameMode.PRACTICE, False),
        )
        items = [
            MenuItem(label, lambda label=label, m=m, t=t: app.push(difficulty_menu(game, label, m, t)))
            for label, m, t in modes
        ]
        items.append(MenuItem("Back", app.pop))
        return MenuScreen(app, game.title, items)

    def open_progress() -> None:
        rows: list[tuple[str, ProgressTotals]] | None = None
        if _db_enabled():
            try:
                rows = [(g.title, load_progress(db_path=default_db_path(), game_code=g.code)) for g in games]
            except (sqlite3.Error, OSError):
                logger.exception("could not load progress")
                rows = None
        app.push(ProgressScreen(app, rows=rows))

    main_items = [MenuItem(g.title, lambda g=g: app.push(game_menu(g))) for g in games]
    main_items.append(MenuItem("Progress", open_progress))
    main_items.append(MenuItem("Quit", app.quit))

    app.push(MenuScreen(app, "Chemistry Trainer", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
