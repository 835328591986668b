from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Set, Tuple, Union
from urllib.parse import urlsplit

DEFAULT_CONFIG_PATH = "./config.json"
DEFAULT_REF = "master"

logger = logging.getLogger("vanity.config")

_HOSTNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?$")


class ConfigError(ValueError):
    """Raised when the site configuration cannot be loaded or fails validation."""


def _check_url(value: str, *, what: str, require_scheme: bool = True) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{what} has to be a valid url")
    if any(ch.isspace() for ch in value):
        raise ConfigError(f"{what} has to be a valid url: {value!r}")
    candidate = value
    if not require_scheme and "://" not in candidate:
        candidate = f"https://{candidate}"
    try:
        parsed = urlsplit(candidate)
        # Accessing .port validates the port component.
        parsed.port
    except ValueError as exc:
        raise ConfigError(f"{what} has to be a valid url: {value!r}") from exc
    hostname = parsed.hostname or ""
    if not parsed.scheme or not hostname:
        raise ConfigError(f"{what} has to be a valid url: {value!r}")
    if ":" not in hostname and not _HOSTNAME_RE.match(hostname):
        raise ConfigError(f"{what} has to be a valid url: {value!r}")
    return value


def _optional_str(data: Mapping[str, Any], key: str, owner: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{owner}: '{key}' must be a string")
    return value


@dataclass(frozen=True)
class Package:
    """A repository entry listed on the site."""

    display_name: str
    git_url: str
    git_ref: str = DEFAULT_REF
    description: str = ""
    parent_display_name: str = ""
    is_sub_path: bool = False
    git_parent: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: int = 0) -> "Package":
        if not isinstance(data, Mapping):
            raise ConfigError(f"package #{index} must be an object")
        owner = f"package #{index}"
        is_sub_path = data.get("is_sub_path", False)
        if is_sub_path is None:
            is_sub_path = False
        if not isinstance(is_sub_path, bool):
            raise ConfigError(f"{owner}: 'is_sub_path' must be a boolean")
        return cls(
            display_name=_optional_str(data, "display_name", owner),
            git_url=_optional_str(data, "git_url", owner),
            git_ref=_optional_str(data, "git_ref", owner),
            description=_optional_str(data, "description", owner),
            parent_display_name=_optional_str(data, "parent_display_name", owner),
            is_sub_path=is_sub_path,
            git_parent=_optional_str(data, "git_parent", owner),
        )

    def validate(self) -> "Package":
        """Return a copy with defaults applied, or raise ``ConfigError``."""
        name = self.display_name.strip().strip("/")
        if not name:
            raise ConfigError("package name cannot be empty")
        _check_url(self.git_url, what=f"package '{name}': git url")
        if self.git_parent:
            _check_url(self.git_parent, what=f"package '{name}': git parent url")
        return replace(
            self,
            display_name=name,
            parent_display_name=self.parent_display_name.strip().strip("/"),
            git_ref=self.git_ref.strip() or DEFAULT_REF,
        )

    @property
    def has_parent(self) -> bool:
        return self.is_sub_path and bool(self.parent_display_name)

    @property
    def import_root(self) -> str:
        # Sub-path packages live inside their parent's repository.
        return self.parent_display_name if self.has_parent else self.display_name

    @property
    def repo_url(self) -> str:
        if self.has_parent and self.git_parent:
            return self.git_parent
        return self.git_url

    @property
    def source_home(self) -> str:
        home = self.repo_url.rstrip("/")
        if home.endswith(".git"):
            home = home[: -len(".git")]
        return home


@dataclass(frozen=True)
class GlobalConfig:
    """Site-wide settings, loaded once at startup."""

    global_domain: str
    site_title: str = ""
    packages: Tuple[Package, ...] = field(default_factory=tuple)

    def validate(self) -> "GlobalConfig":
        _check_url(self.global_domain, what="global domain", require_scheme=False)
        packages = tuple(package.validate() for package in self.packages)
        seen: Set[str] = set()
        for package in packages:
            if package.display_name in seen:
                logger.warning(
                    "Duplicate package name %r; only the first entry is served.",
                    package.display_name,
                )
            seen.add(package.display_name)
        return replace(self, packages=packages)

    def find_package(self, name: str) -> Optional[Package]:
        for package in self.packages:
            if package.display_name == name:
                return package
        return None

    def children_of(self, name: str) -> Tuple[Package, ...]:
        return tuple(
            package
            for package in self.packages
            if package.has_parent and package.parent_display_name == name
        )

    def domain_url(self, name: str) -> str:
        return f"{self.global_domain.rstrip('/')}/{name}"

    @property
    def domain_host(self) -> str:
        domain = self.global_domain.rstrip("/")
        if "://" in domain:
            domain = domain.split("://", 1)[1]
        return domain

    def import_prefix(self, name: str) -> str:
        return f"{self.domain_host}/{name}"


def parse_config(data: Any) -> GlobalConfig:
    """
    Build a validated ``GlobalConfig`` from decoded JSON.

    Unknown keys are ignored so the file can carry extra notes for humans.
    """
    if not isinstance(data, Mapping):
        raise ConfigError("config root must be a JSON object")
    domain = data.get("global_domain")
    if not isinstance(domain, str):
        raise ConfigError("global domain has to be a valid url")
    title = data.get("site_title") or ""
    if not isinstance(title, str):
        raise ConfigError("'site_title' must be a string")
    raw_packages = data.get("packages") or []
    if not isinstance(raw_packages, list):
        raise ConfigError("'packages' must be a list")
    packages = tuple(
        Package.from_dict(item, index) for index, item in enumerate(raw_packages)
    )
    return GlobalConfig(global_domain=domain, site_title=title, packages=packages).validate()


def load_config(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> GlobalConfig:
    config_path = Path(path).expanduser().resolve()
    if not config_path.is_file():
        raise ConfigError(f"config file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file {config_path} is not valid JSON: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigError(f"config file {config_path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"cannot read config file {config_path}: {exc}") from exc
    config = parse_config(data)
    logger.info(
        "Loaded %d package(s) for %s from %s",
        len(config.packages),
        config.global_domain,
        config_path,
    )
    return config
