"""Saved login token for the CLI client.

`tm-client login` stores the token in $HOME/.tm-manager/cred.json;
other commands read it back to build the Authorization header.
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional


def credentials_path() -> Path:
    override = os.environ.get("TM_CREDENTIALS_FILE")
    if override:
        return Path(override)
    return Path.home() / ".tm-manager" / "cred.json"


class CredentialsError(Exception):
    """The saved credentials file exists but can't be read."""


@dataclass
class Credentials:
    token: str

    @classmethod
    def parse(cls, body: bytes) -> "Credentials":
        """Parse the login response body ({"token": ...})."""
        data = json.loads(body)
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise ValueError("response has no token")
        return cls(token=token)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> Optional["Credentials"]:
        path = path or credentials_path()
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
            cred = cls(**data)
        except (ValueError, TypeError) as e:
            raise CredentialsError(f"corrupt credentials file {path}: {e}") from e
        if not isinstance(cred.token, str) or not cred.token:
            raise CredentialsError(f"corrupt credentials file {path}: no token")
        return cred

    def save(self, path: Optional[Path] = None) -> Path:
        path = path or credentials_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        # os.open applies the mode only on create; chmod fixes an existing file
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(json.dumps(asdict(self)))
        path.chmod(0o600)
        return path
