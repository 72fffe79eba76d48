from __future__ import annotations

import logging

import yaml
from pydantic import ValidationError

from persistence.interfaces import ConfigStore

from .errors import NotFoundError
from .models import Configuration

logger = logging.getLogger(__name__)


def load_configuration(store: ConfigStore, name: str) -> Configuration:
    """
    Read the extension config from the store.

    A missing file means defaults. A broken file is logged and also falls back
    to defaults, so a typo there cannot lock the editor out.
    """
    try:
        raw = store.get(name)
    except NotFoundError:
        return Configuration()
    try:
        doc = yaml.safe_load(raw.decode("utf-8"))
        return Configuration.from_disk_doc(doc)
    except (yaml.YAMLError, UnicodeDecodeError, ValidationError) as e:
        logger.warning("CONFIG LOAD: ignoring invalid %s: %s", name, e)
        return Configuration()


def save_configuration(store: ConfigStore, name: str, config: Configuration) -> None:
    text = yaml.safe_dump(config.to_disk_doc(), indent=4, default_flow_style=False, sort_keys=False)
    store.put(name, text.encode("utf-8"))
