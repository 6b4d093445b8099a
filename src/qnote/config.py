from __future__ import annotations
import json
import os
import tomllib
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError

COLOR_NAMES = {"default", "black", "red", "green", "yellow", "blue", "magenta", "cyan", "white"}


def data_dir() -> Path:
    """Directory holding the database and logs ($QNOTE_HOME, else ~/.qnote)."""
    env = os.getenv("QNOTE_HOME")
    return Path(env) if env else Path.home() / ".qnote"


def config_path() -> Path:
    env = os.getenv("QNOTE_CONFIG_PATH")
    if env:
        return Path(env)
    xdg = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "qnote" / "config.toml"


class UiConfig(BaseModel):
    # list pane width as a fraction of the terminal width
    split_ratio: float = Field(0.4, ge=0.1, le=0.9)
    # render ticks before a status message disappears
    message_display_ticks: int = Field(5, gt=0)
    preview_scroll_step: int = Field(3, gt=0)
    # how long the loop waits for a key before rendering again
    tick_interval_ms: int = Field(1000, ge=50)


class EditorConfig(BaseModel):
    default_editor: Optional[str] = None
    secure_temp_files: bool = True


class KeybindingsConfig(BaseModel):
    quit: str = "q"
    new_note: str = "n"
    delete: str = "d"
    edit: str = "e"
    search: str = "/"
    export: str = "x"
    sort: str = "s"
    goto_top: str = "g"
    goto_bottom: str = "G"
    move_down: str = "j"
    move_up: str = "k"
    confirm: str = "y"
    scroll_down: str = "ctrl-j"
    scroll_up: str = "ctrl-k"
    next_match: str = "ctrl-n"
    prev_match: str = "ctrl-p"
    toggle_mark: str = " "
    mark_all: str = "A"
    clear_marks: str = "C"
    delete_marked: str = "D"
    export_marked: str = "X"
    toggle_help: str = "."

    @field_validator("*")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("key binding must not be empty")
        return v

    @model_validator(mode="after")
    def _unique_normal_keys(self) -> "KeybindingsConfig":
        normal = [
            self.quit, self.new_note, self.delete, self.edit, self.search, self.export,
            self.sort, self.goto_top, self.goto_bottom, self.move_down, self.move_up,
            self.scroll_down, self.scroll_up, self.toggle_mark, self.mark_all,
            self.clear_marks, self.delete_marked, self.export_marked, self.toggle_help,
        ]
        dupes = sorted({k for k in normal if normal.count(k) > 1})
        if dupes:
            raise ValueError(f"keys bound more than once: {', '.join(dupes)}")
        return self


class DatabaseConfig(BaseModel):
    wal_mode: bool = True
    # negative = KiB, positive = pages (SQLite semantics)
    cache_size_kb: int = -64000
    synchronous: Literal["OFF", "NORMAL", "FULL", "EXTRA"] = "NORMAL"
    temp_store: Literal["DEFAULT", "FILE", "MEMORY"] = "MEMORY"


class ThemeConfig(BaseModel):
    heading: str = "cyan"
    code: str = "yellow"
    selection: str = "magenta"
    metadata: str = "blue"
    status: str = "yellow"
    match: str = "green"

    @field_validator("*")
    @classmethod
    def _known_color(cls, v: str) -> str:
        v = v.lower()
        if v not in COLOR_NAMES:
            raise ValueError(f"unknown colour '{v}' (choose from {', '.join(sorted(COLOR_NAMES))})")
        return v


class ExportConfig(BaseModel):
    directory: str = "."


class Config(BaseModel):
    ui: UiConfig = Field(default_factory=UiConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    keybindings: KeybindingsConfig = Field(default_factory=KeybindingsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Read the TOML config; a missing file means all defaults."""
        path = path or config_path()
        if not path.exists():
            return cls()
        try:
            with open(path, "rb") as fh:
                data = tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"Cannot read config {path}: {exc}") from exc
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config {path}:\n{exc}") from exc

    def save(self, path: Optional[Path] = None) -> Path:
        path = path or config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_toml(), encoding="utf-8")
        return path

    def to_toml(self) -> str:
        q = json.dumps  # TOML basic strings accept JSON escapes
        ui, ed, kb, db, th = self.ui, self.editor, self.keybindings, self.database, self.theme
        editor_line = (
            f"default_editor = {q(ed.default_editor)}" if ed.default_editor
            else '# default_editor = "nvim"   ($EDITOR takes precedence)'
        )
        keys = "\n".join(f"{name} = {q(value)}" for name, value in kb.model_dump().items())
        colors = "\n".join(f"{name} = {q(value)}" for name, value in th.model_dump().items())
        return f"""# qnote configuration file

[ui]
# List pane width (0.1-0.9). Example: 0.3 = 30% list, 70% preview
split_ratio = {ui.split_ratio}
# Render ticks before status messages disappear
message_display_ticks = {ui.message_display_ticks}
# Lines to scroll the preview per key press
preview_scroll_step = {ui.preview_scroll_step}
# Milliseconds between render ticks while idle
tick_interval_ms = {ui.tick_interval_ms}

[editor]
{editor_line}
# Restrict temp files to owner read/write (POSIX only)
secure_temp_files = {str(ed.secure_temp_files).lower()}

[keybindings]
{keys}

[database]
# Write-Ahead Logging (disable for network drives)
wal_mode = {str(db.wal_mode).lower()}
# Negative value = KiB, positive = pages
cache_size_kb = {db.cache_size_kb}
# OFF, NORMAL, FULL or EXTRA
synchronous = {q(db.synchronous)}
# DEFAULT, FILE or MEMORY
temp_store = {q(db.temp_store)}

[theme]
# default, black, red, green, yellow, blue, magenta, cyan, white
{colors}

[export]
directory = {q(self.export.directory)}
"""
