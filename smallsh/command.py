from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Command:
    """One parsed command line: argument vector, redirections, background flag."""

    args: List[str] = field(default_factory=list)
    input_file: Optional[str] = None
    output_file: Optional[str] = None
    background: bool = False

    @property
    def program(self):
        return self.args[0] if self.args else None

    @property
    def is_empty(self):
        return not self.args

    @property
    def redirects(self):
        return self.input_file is not None or self.output_file is not None
