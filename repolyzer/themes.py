"""Color themes. A theme is a plain value handed to the renderer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    name: str
    primary: str
    secondary: str
    accent: str
    text: str
    muted: str
    success: str
    error: str
    warning: str
    border: str

    @property
    def title(self) -> str:
        return f"bold {self.primary}"

    @property
    def selected(self) -> str:
        return f"bold {self.success}"

    @property
    def input(self) -> str:
        return f"bold {self.warning}"

    @property
    def subtle(self) -> str:
        return self.muted

    @property
    def danger(self) -> str:
        return f"bold {self.error}"


THEMES = (
    Theme("Catppuccin Mocha", "#cba6f7", "#89b4fa", "#f5c2e7", "#cdd6f4", "#6c7086",
          "#a6e3a1", "#f38ba8", "#f9e2af", "#89b4fa"),
    Theme("Catppuccin Latte", "#8839ef", "#1e66f5", "#ea76cb", "#4c4f69", "#9ca0b0",
          "#40a02b", "#d20f39", "#df8e1d", "#1e66f5"),
    Theme("Dracula", "#bd93f9", "#8be9fd", "#ff79c6", "#f8f8f2", "#6272a4",
          "#50fa7b", "#ff5555", "#f1fa8c", "#bd93f9"),
    Theme("Nord", "#88c0d0", "#81a1c1", "#b48ead", "#eceff4", "#4c566a",
          "#a3be8c", "#bf616a", "#ebcb8b", "#5e81ac"),
    Theme("Tokyo Night", "#7aa2f7", "#bb9af7", "#7dcfff", "#c0caf5", "#565f89",
          "#9ece6a", "#f7768e", "#e0af68", "#7aa2f7"),
    Theme("Gruvbox Dark", "#fe8019", "#83a598", "#d3869b", "#ebdbb2", "#928374",
          "#b8bb26", "#fb4934", "#fabd2f", "#d65d0e"),
    Theme("One Dark", "#61afef", "#c678dd", "#56b6c2", "#abb2bf", "#5c6370",
          "#98c379", "#e06c75", "#e5c07b", "#61afef"),
)

DEFAULT_THEME_INDEX = 0


def theme_for(index: int) -> Theme:
    return THEMES[index % len(THEMES)]


def next_theme_index(index: int) -> int:
    return (index + 1) % len(THEMES)


def theme_names() -> list[str]:
    return [t.name for t in THEMES]
