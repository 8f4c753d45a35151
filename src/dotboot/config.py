"""TOML configuration loading for dotboot."""

from __future__ import annotations

import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigError

DEFAULT_CONFIG_FILENAME = "dotboot.toml"

DEFAULT_DOTFILES_DIR = "~/.dotfiles"
DEFAULT_REPO_URL = "https://github.com/jmcombs/dotfiles.git"
DEFAULT_INSTALLING_ENV_VAR = "DOTFILES_INSTALLING"

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
OH_MY_ZSH_INSTALL_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
THEME_REPO_URL = "https://github.com/jmcombs/blue-psl-10k.git"

# Plugins that Oh My Zsh does not ship and that we know how to fetch.
KNOWN_PLUGIN_REPOSITORIES: dict[str, str] = {
    "zsh-autosuggestions": "https://github.com/zsh-users/zsh-autosuggestions",
    "zsh-syntax-highlighting": "https://github.com/zsh-users/zsh-syntax-highlighting",
}

DEFAULT_SYMLINKS = (
    ("zsh/.zprofile", "~/.zprofile"),
    ("zsh/.zshrc", "~/.zshrc"),
    ("git/.gitconfig", "~/.gitconfig"),
    ("ghostty/config", "~/.config/ghostty/config"),
)
DEFAULT_STOW_PACKAGES = ("zsh", "git", "ghostty")
DEFAULT_STOW_CONFLICTS = ("~/.zshrc", "~/.zprofile", "~/.gitconfig")

DEFAULT_THEME_DIRECTORIES = (
    "~/.config/ghostty",
    "~/.config/ghostty/themes",
    "~/.config/oh-my-posh/themes",
)
DEFAULT_THEME_ASSETS = (
    ("posh/blue-psl-10k.omp.json", "~/.config/oh-my-posh/themes"),
    ("ghostty/blue-psl-10k", "~/.config/ghostty/themes"),
)

DEFAULT_POST_INSTALL_NOTES = (
    "Open a new terminal or run: exec zsh",
    "1Password CLI: run 'op plugin init <plugin>' for shell integrations",
    "Mac App Store: Caffeinated, Wipr 2, Yoink",
    "Direct downloads: DDPM, Cisco Accessory Hub, Webex, Microsoft Office/Teams",
    "A reboot is recommended (required for Logitech Options+ and some drivers)",
)

STAGES = ("preflight", "bootstrap", "packages", "shell", "links", "themes", "identity")
SKIPPABLE_STAGES = STAGES[2:]


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


def _expand_location(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Like ``_expand_path`` but a trailing symlink names the link, not its target."""

    expanded = Path(os.path.expandvars(str(raw))).expanduser()
    return Path(os.path.abspath(base_dir / expanded))


def _string_list(raw: Any, *, field: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
        raise ConfigError(f"'{field}' must be a list of strings")
    return tuple(str(item) for item in raw)


class LinkStrategyName(str, Enum):
    """How managed dotfiles are materialised in the home directory."""

    SYMLINK = "symlink"
    STOW = "stow"


class Settings(BaseModel):
    """Global configuration options."""

    model_config = ConfigDict(frozen=True)

    dotfiles_dir: Path
    repo_url: str = DEFAULT_REPO_URL
    backup_root: Path
    link_strategy: LinkStrategyName = LinkStrategyName.STOW
    skip: tuple[str, ...] = ()
    installing_env_var: str = DEFAULT_INSTALLING_ENV_VAR
    post_install_notes: tuple[str, ...] = DEFAULT_POST_INSTALL_NOTES

    @property
    def checkout_name(self) -> str:
        return self.dotfiles_dir.name

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, base_dir: Path) -> "Settings":
        dotfiles_dir = _expand_path(raw.get("dotfiles_dir", DEFAULT_DOTFILES_DIR), base_dir=base_dir)
        backup_root = _expand_path(raw.get("backup_root", "~"), base_dir=base_dir)

        skip = _string_list(raw.get("skip"), field="settings.skip")
        for stage in skip:
            if stage not in SKIPPABLE_STAGES:
                raise ConfigError(
                    f"Cannot skip stage '{stage}'; choose from: {', '.join(SKIPPABLE_STAGES)}"
                )

        values: dict[str, Any] = {
            "dotfiles_dir": dotfiles_dir,
            "backup_root": backup_root,
            "skip": skip,
        }
        for key in ("repo_url", "link_strategy", "installing_env_var"):
            if key in raw:
                values[key] = raw[key]
        if "post_install_notes" in raw:
            values["post_install_notes"] = _string_list(
                raw["post_install_notes"], field="settings.post_install_notes"
            )
        return cls(**values)


class HomebrewConfig(BaseModel):
    """Where Homebrew lives and how the Brewfile is applied."""

    model_config = ConfigDict(frozen=True)

    prefix: Path = Path("/opt/homebrew")
    install_url: str = HOMEBREW_INSTALL_URL
    profile: Path
    brewfile: Path
    no_lock: bool = False
    update: bool = True
    lfs: bool = True

    @property
    def brew(self) -> Path:
        return self.prefix / "bin" / "brew"

    @property
    def shellenv_line(self) -> str:
        return f'eval "$({self.brew} shellenv)"'

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, home: Path, dotfiles_dir: Path) -> "HomebrewConfig":
        values: dict[str, Any] = {
            "profile": _expand_location(raw.get("profile", "~/.zprofile"), base_dir=home),
            "brewfile": _expand_path(raw.get("brewfile", "Brewfile"), base_dir=dotfiles_dir),
        }
        if "prefix" in raw:
            values["prefix"] = _expand_path(raw["prefix"], base_dir=home)
        for key in ("install_url", "no_lock", "update", "lfs"):
            if key in raw:
                values[key] = raw[key]
        return cls(**values)


class PluginSpec(BaseModel):
    """A shell plugin and, for non built-ins, where to clone it from."""

    model_config = ConfigDict(frozen=True)

    name: str
    repository: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> "PluginSpec":
        if isinstance(raw, str):
            return cls(name=raw, repository=KNOWN_PLUGIN_REPOSITORIES.get(raw))
        if isinstance(raw, Mapping) and "name" in raw:
            name = str(raw["name"])
            return cls(name=name, repository=raw.get("repository") or KNOWN_PLUGIN_REPOSITORIES.get(name))
        raise ConfigError(f"Plugin declaration '{raw}' must be a name or a table with a 'name' key")


class ShellConfig(BaseModel):
    """Oh My Zsh location and the plugin declaration."""

    model_config = ConfigDict(frozen=True)

    omz_dir: Path
    install_url: str = OH_MY_ZSH_INSTALL_URL
    zshrc: Path
    plugins: tuple[PluginSpec, ...] = ()

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, home: Path, dotfiles_dir: Path) -> "ShellConfig":
        plugins_raw = raw.get("plugins") or []
        if not isinstance(plugins_raw, list):
            raise ConfigError("'shell.plugins' must be a list")
        values: dict[str, Any] = {
            "omz_dir": _expand_path(raw.get("omz_dir", "~/.oh-my-zsh"), base_dir=home),
            "zshrc": _expand_path(raw.get("zshrc", "zsh/.zshrc"), base_dir=dotfiles_dir),
            "plugins": tuple(PluginSpec.from_raw(item) for item in plugins_raw),
        }
        if "install_url" in raw:
            values["install_url"] = raw["install_url"]
        return cls(**values)


class LinkSpec(BaseModel):
    """A file in the checkout and the place it should appear."""

    model_config = ConfigDict(frozen=True)

    source: Path
    destination: Path


class LinksConfig(BaseModel):
    """Inputs for both link strategies."""

    model_config = ConfigDict(frozen=True)

    symlinks: tuple[LinkSpec, ...]
    stow_packages: tuple[str, ...]
    stow_conflicts: tuple[Path, ...]

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, home: Path, dotfiles_dir: Path) -> "LinksConfig":
        symlinks_raw = raw.get("symlinks")
        if symlinks_raw is None:
            pairs = list(DEFAULT_SYMLINKS)
        else:
            if not isinstance(symlinks_raw, list):
                raise ConfigError("'links.symlinks' must be an array of tables")
            pairs = []
            for item in symlinks_raw:
                if not isinstance(item, Mapping) or "source" not in item or "destination" not in item:
                    raise ConfigError("Each [[links.symlinks]] entry needs 'source' and 'destination'")
                pairs.append((item["source"], item["destination"]))

        symlinks = tuple(
            LinkSpec(
                source=_expand_path(source, base_dir=dotfiles_dir),
                destination=_expand_location(destination, base_dir=home),
            )
            for source, destination in pairs
        )

        packages = (
            _string_list(raw["stow_packages"], field="links.stow_packages")
            if "stow_packages" in raw
            else DEFAULT_STOW_PACKAGES
        )
        for package in packages:
            if "/" in package or package in {"", ".", ".."}:
                raise ConfigError(f"Stow package '{package}' must be a directory name inside the checkout")

        conflicts_raw = (
            _string_list(raw["stow_conflicts"], field="links.stow_conflicts")
            if "stow_conflicts" in raw
            else DEFAULT_STOW_CONFLICTS
        )
        conflicts = tuple(_expand_location(item, base_dir=home) for item in conflicts_raw)

        return cls(symlinks=symlinks, stow_packages=packages, stow_conflicts=conflicts)


class ThemeAsset(BaseModel):
    """A file inside the theme cache and the directory it is copied into."""

    model_config = ConfigDict(frozen=True)

    source: Path
    target_dir: Path


class ThemeConfig(BaseModel):
    """External theme repository and the assets copied out of it."""

    model_config = ConfigDict(frozen=True)

    repo_url: str = THEME_REPO_URL
    cache_dir: Path
    directories: tuple[Path, ...]
    assets: tuple[ThemeAsset, ...]

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, home: Path, dotfiles_dir: Path) -> "ThemeConfig":
        directories_raw = (
            _string_list(raw["directories"], field="themes.directories")
            if "directories" in raw
            else DEFAULT_THEME_DIRECTORIES
        )

        assets_raw = raw.get("assets")
        if assets_raw is None:
            pairs = list(DEFAULT_THEME_ASSETS)
        else:
            if not isinstance(assets_raw, list):
                raise ConfigError("'themes.assets' must be an array of tables")
            pairs = []
            for item in assets_raw:
                if not isinstance(item, Mapping) or "source" not in item or "target" not in item:
                    raise ConfigError("Each [[themes.assets]] entry needs 'source' and 'target'")
                pairs.append((item["source"], item["target"]))

        for source, _target in pairs:
            candidate = Path(str(source))
            if candidate.is_absolute() or ".." in candidate.parts:
                raise ConfigError(f"Theme asset '{source}' must be relative to the theme repository")

        values: dict[str, Any] = {
            "cache_dir": _expand_path(raw.get("cache_dir", ".cache/blue-psl-10k"), base_dir=dotfiles_dir),
            "directories": tuple(_expand_location(item, base_dir=home) for item in directories_raw),
            "assets": tuple(
                ThemeAsset(source=Path(str(source)), target_dir=_expand_location(target, base_dir=home))
                for source, target in pairs
            ),
        }
        if "repo_url" in raw:
            values["repo_url"] = raw["repo_url"]
        return cls(**values)


class IdentityConfig(BaseModel):
    """Location of the per-machine Git identity file."""

    model_config = ConfigDict(frozen=True)

    path: Path

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, home: Path) -> "IdentityConfig":
        return cls(path=_expand_location(raw.get("path", "~/.gitconfig.local"), base_dir=home))


class Config(BaseModel):
    """Fully parsed configuration, with defaults filled in."""

    model_config = ConfigDict(frozen=True)

    config_path: Path | None
    settings: Settings
    homebrew: HomebrewConfig
    shell: ShellConfig
    links: LinksConfig
    themes: ThemeConfig
    identity: IdentityConfig


def load_config(path: Path | None = None, *, search_dir: Path | None = None) -> Config:
    """Load and validate a configuration file.

    Args:
        path: Optional path to a TOML file, or to a directory containing
            ``dotboot.toml``. An explicit path must exist.
        search_dir: Directory searched for ``dotboot.toml`` when ``path`` is
            not given. Defaults to the current working directory. When no file
            is found the built-in defaults are returned.
    """

    config_path = _resolve_config_path(path, search_dir=search_dir)
    data: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Configuration file '{config_path}' is not valid TOML: {exc}") from exc

    base_dir = config_path.parent if config_path is not None else Path.cwd()
    return build_config(data, base_dir=base_dir, config_path=config_path)


def build_config(data: Mapping[str, Any], *, base_dir: Path, config_path: Path | None = None) -> Config:
    """Validate already-parsed TOML data into a ``Config``."""

    home = Path.home()

    for section in ("settings", "homebrew", "shell", "links", "themes", "identity"):
        if section in data and not isinstance(data[section], Mapping):
            raise ConfigError(f"'{section}' must be a table")

    try:
        settings = Settings.from_raw(data.get("settings", {}), base_dir=base_dir)
        dotfiles_dir = settings.dotfiles_dir
        return Config(
            config_path=config_path,
            settings=settings,
            homebrew=HomebrewConfig.from_raw(data.get("homebrew", {}), home=home, dotfiles_dir=dotfiles_dir),
            shell=ShellConfig.from_raw(data.get("shell", {}), home=home, dotfiles_dir=dotfiles_dir),
            links=LinksConfig.from_raw(data.get("links", {}), home=home, dotfiles_dir=dotfiles_dir),
            themes=ThemeConfig.from_raw(data.get("themes", {}), home=home, dotfiles_dir=dotfiles_dir),
            identity=IdentityConfig.from_raw(data.get("identity", {}), home=home),
        )
    except ValidationError as exc:
        where = f" in '{config_path}'" if config_path is not None else ""
        raise ConfigError(f"Invalid configuration{where}: {exc}") from exc


def _resolve_config_path(path: Path | None, *, search_dir: Path | None) -> Path | None:
    if path is None:
        candidate = (search_dir or Path.cwd()) / DEFAULT_CONFIG_FILENAME
        return candidate.resolve(strict=False) if candidate.is_file() else None

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file '{path}' does not exist")
    if path.is_dir():
        candidate = path / DEFAULT_CONFIG_FILENAME
        if not candidate.exists():
            raise ConfigError(f"Expected to find '{DEFAULT_CONFIG_FILENAME}' inside '{path}', but none was located")
        path = candidate

    return path.resolve(strict=False)
