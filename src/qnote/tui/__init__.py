from __future__ import annotations

from .. import services
from ..config import Config
from ..editor import EditorBridge
from .app import App
from .screen import Screen


def run_tui(config: Config, store=services) -> None:
    """Load the notes, take over the terminal and run until the user quits."""
    app = App(store=store, config=config)
    # a store that cannot be read aborts before the screen is touched
    app.load()
    with Screen(config.theme) as screen:
        app.bridge = EditorBridge(config.editor, suspend=screen.suspended)
        app.run(screen)
