from dataclasses import dataclass


@dataclass
class CommandResult:
    exit_code: int
    stdout: str = ''
    stderr: str = ''

    @property
    def succeeded(self):
        return self.exit_code == 0
