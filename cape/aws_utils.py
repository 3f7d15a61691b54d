"""
AWS utility functions for CAPE
"""

import os
from pathlib import Path
from typing import Dict, List, Optional
import configparser


def _aws_file(env_var: str, default_name: str) -> Path:
    override = os.environ.get(env_var)
    if override:
        return Path(override)
    return Path.home() / '.aws' / default_name


def get_aws_profiles() -> List[Dict[str, Optional[str]]]:
    """
    Get list of available AWS profiles from the shared credentials and config files

    Honors AWS_SHARED_CREDENTIALS_FILE and AWS_CONFIG_FILE.

    Returns:
        List of dicts with profile info: [{'name': 'default', 'region': 'us-east-1'}, ...]
    """
    profiles: Dict[str, Dict[str, Optional[str]]] = {}

    credentials_path = _aws_file('AWS_SHARED_CREDENTIALS_FILE', 'credentials')
    if credentials_path.exists():
        config = configparser.ConfigParser()
        config.read(credentials_path)
        for section in config.sections():
            profiles[section] = {'name': section, 'region': None}

    # Config sections are like "profile prod" or "default"
    config_path = _aws_file('AWS_CONFIG_FILE', 'config')
    if config_path.exists():
        config = configparser.ConfigParser()
        config.read(config_path)
        for section in config.sections():
            if section.startswith('sso-session ') or section.startswith('services '):
                continue
            profile_name = section[len('profile '):] if section.startswith('profile ') else section

            if profile_name not in profiles:
                profiles[profile_name] = {'name': profile_name, 'region': None}

            if config.has_option(section, 'region'):
                profiles[profile_name]['region'] = config.get(section, 'region')

    return sorted(profiles.values(), key=lambda p: p['name'])


def missing_profiles(profile_names: List[str]) -> List[str]:
    """Profiles from the list that are not configured locally."""
    known = {p['name'] for p in get_aws_profiles()}
    return [name for name in profile_names if name not in known]
