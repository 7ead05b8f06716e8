"""Argument parser that suggests the closest subcommand on a typo."""

from __future__ import annotations

import argparse
import difflib
import sys
from typing import NoReturn

__all__ = ["SmartParser"]


class SmartParser(argparse.ArgumentParser):
    def _subcommand_names(self) -> list[str]:
        names: list[str] = []
        for action in self._actions:
            if isinstance(action, argparse._SubParsersAction):
                names.extend(action.choices.keys())
        return names

    def error(self, message: str) -> NoReturn:
        """Print usage plus a "Did you mean" hint for unknown subcommands, then exit 2."""
        if "invalid choice" in message:
            bad = message.split("'")[1] if "'" in message else ""
            suggestions = difflib.get_close_matches(bad, self._subcommand_names(), n=3, cutoff=0.6)
            if suggestions:
                message = f"{message}\n\nDid you mean: {', '.join(suggestions)}?"
        self.print_usage(sys.stderr)
        self.exit(2, f"{self.prog}: error: {message}\n")
