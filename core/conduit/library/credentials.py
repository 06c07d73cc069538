import os
from typing import Dict, Iterator, Mapping, Optional

ENV_PREFIX = "CONDUIT_CRED_"


class CredentialBag(Mapping[str, str]):
    """Read-only secret map handed to a run.

    The engine passes it to collaborators and never logs or persists it;
    ``repr`` shows key names only.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(values or {})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CredentialBag":
        """Collect ``CONDUIT_CRED_*`` variables.

        ``CONDUIT_CRED_OPENAI_API_KEY`` becomes ``openai-api-key``.
        """
        env = os.environ if environ is None else environ
        values = {
            name[len(ENV_PREFIX):].lower().replace("_", "-"): value
            for name, value in env.items()
            if name.startswith(ENV_PREFIX) and value
        }
        return cls(values)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CredentialBag(keys={sorted(self._values)})"

    __str__ = __repr__

    def get_api_key(self, provider: str) -> Optional[str]:
        """Convenience lookup for ``<provider>-api-key``."""
        return self._values.get(f"{provider}-api-key")
