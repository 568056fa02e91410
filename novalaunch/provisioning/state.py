"""On-disk machine state: which server id backs a logical machine."""

import logging
from pathlib import Path

from novalaunch.provisioning.interfaces import MachineState

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = ".novalaunch"


class FileMachineState(MachineState):
    """Stores the server id at ``<data_dir>/machines/<name>/id``."""

    def __init__(self, name, data_dir=DEFAULT_DATA_DIR):
        self.name = name
        self.path = Path(data_dir) / "machines" / name / "id"

    @property
    def id(self):
        if not self.path.exists():
            return None
        return self.path.read_text().strip() or None

    def set_instance_id(self, instance_id):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{instance_id}\n")
        logger.debug(f"Recorded server id {instance_id} in {self.path}")
