#!/usr/bin/env python3
"""
Shared configuration utilities for the SharePoint permission audit tools.

This module provides shared functions for:
- Loading audit settings from an INI file plus command line overrides
- Reading rclone configuration
- Extracting access tokens
- Finding SharePoint remotes
"""

import configparser
import json
import os
from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .errors import ConfigError
from .paging import DEFAULT_BATCH_SIZE
from .retry import DEFAULT_INITIAL_DELAY, DEFAULT_MAX_ATTEMPTS

RCLONE_CONF_PATH = "~/.config/rclone/rclone.conf"
TOKEN_ENV_VAR = "SPAUDIT_ACCESS_TOKEN"
SETTINGS_SECTION = "audit"

# Lists that are never worth scanning even when they are not flagged Hidden.
EXCLUDED_LISTS = (
    "Access Requests", "App Packages", "appdata", "appfiles", "Apps in Testing",
    "Cache Profiles", "Composed Looks", "Content and Structure Reports",
    "Content type publishing error log", "Converted Forms", "Device Channels",
    "Form Templates", "fpdatasources", "Get started with Apps for Office and SharePoint",
    "List Template Gallery", "Long Running Operation Status", "Maintenance Log Library",
    "Images", "site collection images", "Master Docs", "Master Page Gallery",
    "MicroFeed", "NintexFormXml", "Quick Deploy Items", "Relationships List",
    "Reusable Content", "Reporting Metadata", "Reporting Templates",
    "Search Config List", "Site Assets", "Preservation Hold Library", "Site Pages",
    "Solution Gallery", "Style Library", "Suggested Content Browser Locations",
    "Theme Gallery", "TaxonomyHiddenList", "User Information List",
    "Web Part Gallery", "wfpub", "wfsvc", "Workflow History", "Workflow Tasks", "Pages",
)


@dataclass(frozen=True)
class AuditSettings:
    """Values the audit run consumes. Loading them is ``load_settings``' job."""

    site_url: str = ""
    target_user: str = ""
    batch_size: int = DEFAULT_BATCH_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: Optional[float] = None
    folders_only: bool = False
    skip_limited_access: bool = True
    include_site_admins: bool = True
    excluded_lists: Tuple[str, ...] = EXCLUDED_LISTS
    timeout: float = 30.0

    def validate(self) -> "AuditSettings":
        if self.batch_size < 1:
            raise ConfigError("batch_size must be at least 1")
        if self.max_attempts < 1:
            raise ConfigError("max_attempts must be at least 1")
        if self.initial_delay < 0 or (self.max_delay is not None and self.max_delay < 0):
            raise ConfigError("retry delays must not be negative")
        return self


def _convert(name: str, raw: str, current):
    """Parse an INI string into the type of the setting's default."""
    try:
        if name == "max_delay":
            return float(raw) if raw.strip() else None
        if name == "excluded_lists":
            return tuple(part.strip() for part in raw.split(",") if part.strip())
        if isinstance(current, bool):
            if raw.strip().lower() in ("1", "yes", "true", "on"):
                return True
            if raw.strip().lower() in ("0", "no", "false", "off"):
                return False
            raise ValueError(raw)
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from None
    return raw.strip()


def load_settings(config_path: Optional[str] = None, **overrides) -> AuditSettings:
    """
    Build audit settings from defaults, an optional INI file and overrides.

    Args:
        config_path: INI file with an ``[audit]`` section. Missing file is an error,
                     None skips the file entirely.
        **overrides: Values that win over the file; None values are ignored

    Returns:
        Validated AuditSettings
    """
    settings = AuditSettings()
    known = {f.name for f in fields(AuditSettings)}

    if config_path is not None:
        path = os.path.expanduser(config_path)
        if not os.path.exists(path):
            raise ConfigError(f"Settings file not found: {path}")
        parser = configparser.ConfigParser()
        parser.read(path)
        if parser.has_section(SETTINGS_SECTION):
            values = {}
            for name, raw in parser.items(SETTINGS_SECTION):
                if name in known:
                    values[name] = _convert(name, raw, getattr(settings, name))
            settings = replace(settings, **values)

    explicit = {name: value for name, value in overrides.items() if value is not None}
    unknown = set(explicit) - known
    if unknown:
        raise ConfigError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
    return replace(settings, **explicit).validate()


def find_sharepoint_remotes(conf_path: str = RCLONE_CONF_PATH) -> List[str]:
    """
    Find all SharePoint/OneDrive remotes in rclone configuration.

    Returns:
        List of remote names, in file order
    """
    conf_path = os.path.expanduser(conf_path)
    if not os.path.exists(conf_path):
        return []

    config = configparser.ConfigParser()
    config.read(conf_path)

    remotes = []
    for section_name in config.sections():
        remote_type = config[section_name].get("type", "").lower()
        if remote_type in ("sharepoint", "onedrive", "onedrivebusiness"):
            remotes.append(section_name)
    return remotes


def _check_expiry(token: Dict, remote: str) -> None:
    expiry_str = token.get("expiry")
    if not expiry_str:
        return
    try:
        expiry_time = datetime.fromisoformat(expiry_str)
    except ValueError:
        # rclone writes nanosecond precision, which older fromisoformat rejects
        return
    if expiry_time.tzinfo is None:
        expiry_time = expiry_time.replace(tzinfo=timezone.utc)
    if datetime.now(timezone.utc) >= expiry_time.astimezone(timezone.utc):
        raise ConfigError(
            f"Token for remote '{remote}' expired on "
            f"{expiry_time.strftime('%Y-%m-%d %H:%M:%S %Z')}. "
            f"Refresh it with: rclone config reconnect {remote}:"
        )


def get_access_token(rclone_remote: Optional[str] = None, conf_path: str = RCLONE_CONF_PATH) -> str:
    """
    Find a bearer token for the SharePoint REST API.

    Args:
        rclone_remote: Name of the remote in rclone.conf.
                       If None, the first SharePoint/OneDrive remote is used.
        conf_path: rclone configuration file

    Returns:
        Access token string

    Raises:
        ConfigError: no usable token could be found
    """
    env_token = os.environ.get(TOKEN_ENV_VAR)
    if env_token:
        return env_token

    path = os.path.expanduser(conf_path)
    if not os.path.exists(path):
        raise ConfigError(
            f"rclone config not found at {path}; configure rclone or set {TOKEN_ENV_VAR}"
        )

    config = configparser.ConfigParser()
    config.read(path)

    if rclone_remote is None:
        remotes = find_sharepoint_remotes(conf_path)
        if not remotes:
            raise ConfigError("No SharePoint remotes found in rclone configuration")
        rclone_remote = remotes[0]

    if rclone_remote not in config:
        raise ConfigError(
            f"Remote '{rclone_remote}' not found in {path}. "
            f"Available remotes: {config.sections()}"
        )

    token_json = config[rclone_remote].get("token")
    if not token_json:
        raise ConfigError(f"No token found for remote '{rclone_remote}' in {path}")

    try:
        token = json.loads(token_json)
    except ValueError as e:
        raise ConfigError(f"Could not parse token JSON: {e}") from e

    _check_expiry(token, rclone_remote)

    access_token = token.get("access_token")
    if not access_token:
        raise ConfigError(f"No access_token in token JSON for remote '{rclone_remote}'")
    return access_token
