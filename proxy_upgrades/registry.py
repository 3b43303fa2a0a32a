import json
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from eth_typing import ChecksumAddress

from proxy_upgrades.constants import Pattern
from proxy_upgrades.utils import load_record_file

STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class UpgradeRecord(NamedTuple):
    """The addresses produced by one proxy upgrade run, as far as it got."""

    pattern: Pattern
    implementations: Dict[str, ChecksumAddress]
    proxies: List[ChecksumAddress]
    network: Dict
    stage: str
    timestamp: str
    proxy_admin: Optional[ChecksumAddress] = None
    beacon: Optional[ChecksumAddress] = None

    def to_json(self) -> Dict:
        data = {
            "pattern": Pattern(self.pattern).value,
            "implementations": dict(self.implementations),
            "proxies": list(self.proxies),
            "network": dict(self.network),
            "stage": self.stage,
            "timestamp": self.timestamp,
        }
        if self.proxy_admin:
            data["proxyAdmin"] = self.proxy_admin
        if self.beacon:
            data["beacon"] = self.beacon
        return data

    @classmethod
    def from_json(cls, data: Dict) -> "UpgradeRecord":
        return cls(
            pattern=Pattern(data["pattern"]),
            implementations=data["implementations"],
            proxies=data["proxies"],
            network=data["network"],
            stage=data["stage"],
            timestamp=data["timestamp"],
            proxy_admin=data.get("proxyAdmin"),
            beacon=data.get("beacon"),
        )


class DeploymentRecordStore:
    """
    A JSON file of upgrade records keyed by proxy pattern.

    Writing a record replaces the entry for its pattern and leaves
    every other entry in the file untouched.
    """

    def __init__(self, filepath: Path):
        self.filepath = Path(filepath)

    def _read_all(self) -> Dict:
        if not self.filepath.exists():
            return dict()
        return load_record_file(self.filepath)

    def write(self, record: UpgradeRecord) -> Path:
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        data = self._read_all()
        data[Pattern(record.pattern).value] = record.to_json()
        with open(self.filepath, "w") as file:
            json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)
        return self.filepath

    def read(self, pattern: Pattern) -> Optional[UpgradeRecord]:
        entry = self._read_all().get(Pattern(pattern).value)
        if entry is None:
            return None
        return UpgradeRecord.from_json(entry)

    def keys(self) -> List[str]:
        return list(self._read_all())
