"""
Dictionary definition lookup for predicted words.
Wraps the public dictionary API and falls back to a placeholder on any failure.
"""

import logging
from typing import Optional
from urllib.parse import quote

import requests

from .utils.error_handling import LookupFailure


logger = logging.getLogger(__name__)

DEFINITION_NOT_FOUND = "Definition not found"
DEFAULT_DEFINITION_URL = "https://api.dictionaryapi.dev/api/v2/entries/en"


class DefinitionLookup:
    """Resolves a word to the first definition of its first meaning"""

    def __init__(
        self,
        base_url: str = DEFAULT_DEFINITION_URL,
        timeout: Optional[float] = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, word: str) -> str:
        """
        Fetch a definition, raising on any failure.

        Raises:
            LookupFailure: network error, non-2xx status, bad JSON or missing fields
        """
        url = f"{self.base_url}/{quote(word, safe='')}"

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise LookupFailure(f"Request for '{word}' failed: {e}") from e
        except ValueError as e:
            raise LookupFailure(f"Response for '{word}' is not valid JSON") from e

        try:
            definition = data[0]['meanings'][0]['definitions'][0]['definition']
        except (KeyError, IndexError, TypeError) as e:
            raise LookupFailure(f"Response for '{word}' has no definition") from e

        if not isinstance(definition, str):
            raise LookupFailure(f"Definition for '{word}' is not a string")
        return definition

    def lookup(self, word: str) -> str:
        """Definition of ``word`` or ``"Definition not found"``; never raises"""
        try:
            return self.fetch(word)
        except LookupFailure as e:
            logger.warning(f"Definition lookup failed: {e}")
            return DEFINITION_NOT_FOUND

    __call__ = lookup
