"""
Tag File CLI Console
=====================
Command-line interface for inspecting and driving a tag file while
simulator processes run against it. Supports:

  - Creating tags (int, float, string)
  - Writing and reading values, with new-data indication
  - Write counts
  - Listing and dumping every tag in the file

Usage:
  python -m console.cli                              # Interactive mode
  python -m console.cli --file tags.txt show         # One-shot dump
  python -m console.cli write TEST:TAG1 int 30       # One-shot write
"""

import argparse
import cmd
import logging
from typing import List, Optional

from hwsim.core.codec import TagType
from hwsim.core.errors import TagStoreError
from hwsim.core.tag_store import TagStore

logger = logging.getLogger(__name__)


class TagConsole(cmd.Cmd):
    """Interactive CLI for a shared tag file."""

    intro = (
        "\n"
        "╔══════════════════════════════════════════════════════╗\n"
        "║  HW Tag Simulator — Tag File Console                 ║\n"
        "║  Type 'help' for commands, 'quit' to exit            ║\n"
        "╚══════════════════════════════════════════════════════╝\n"
    )
    prompt = "TAGS> "

    def __init__(self, store: TagStore):
        super().__init__()
        self.store = store

    def onecmd(self, line):
        try:
            return super().onecmd(line)
        except TagStoreError as exc:
            print(f"Error {exc.code} ({exc.kind.name}): {exc}")
            return False

    # ── Tag Commands ─────────────────────────────────────────

    def do_create(self, arg):
        """Create a tag: create <tag> <int|float|str> <value>"""
        parsed = self._parse_assignment(arg, "create")
        if parsed is None:
            return
        tag, tag_type, value = parsed
        self.store.create_tag(tag, value, tag_type)
        print(f"{tag} created")

    def do_write(self, arg):
        """Write a tag value: write <tag> <int|float|str> <value>"""
        parsed = self._parse_assignment(arg, "write")
        if parsed is None:
            return
        tag, tag_type, value = parsed
        self.store.write_value(tag, value, tag_type)
        print(f"{tag} = {value!r} (count {self.store.get_count(tag)})")

    def do_read(self, arg):
        """Read a tag value: read <tag> [int|float|str]"""
        parts = arg.split()
        if len(parts) not in (1, 2):
            print("Usage: read <tag> [int|float|str]")
            return
        tag_type = TagType.parse(parts[1]) if len(parts) == 2 else None
        value, is_new = self.store.read_value(parts[0], tag_type)
        flag = "NEW" if is_new else "unchanged"
        print(f"{parts[0]} = {value!r} [{flag}]")

    def do_count(self, arg):
        """Show a tag's write count: count <tag>"""
        tag = arg.strip()
        if not tag:
            print("Usage: count <tag>")
            return
        print(f"{tag} count = {self.store.get_count(tag)}")

    # ── Listing Commands ─────────────────────────────────────

    def do_tags(self, arg):
        """List tag names: tags [filter]"""
        filter_str = arg.strip()
        names = [n for n in self.store.tag_names() if filter_str in n]
        if not names:
            print("\n  No tags.\n")
            return
        print("\n── Tags ─────────────────────────────────────────")
        for name in names:
            print(f"  {name}")
        print()

    def do_show(self, arg):
        """Show every tag with value and count: show [filter]"""
        filter_str = arg.strip()
        records = [r for r in self.store.snapshot() if filter_str in r.name]
        if not records:
            print("\n  No tags.\n")
            return
        print("\n── Tag Values ───────────────────────────────────")
        for rec in records:
            print(f"  {rec.name:<40s} {rec.value:>24s}  #{rec.count}")
        print()

    # ── Utility ──────────────────────────────────────────────

    def do_quit(self, arg):
        """Exit the console: quit"""
        return True

    def do_exit(self, arg):
        """Exit the console: exit"""
        return self.do_quit(arg)

    do_EOF = do_quit

    def emptyline(self):
        pass

    def default(self, line):
        print(f"Unknown command: {line}. Type 'help' for available commands.")

    @staticmethod
    def _parse_assignment(arg: str, verb: str):
        parts = arg.split(None, 2)
        if len(parts) != 3:
            print(f"Usage: {verb} <tag> <int|float|str> <value>")
            return None
        tag, type_name, text = parts
        tag_type = TagType.parse(type_name)
        try:
            if tag_type == TagType.INT:
                value = int(text)
            elif tag_type == TagType.FLOAT:
                value = float(text)
            else:
                value = text
        except ValueError:
            print(f"Cannot convert {text!r} to {tag_type.name.lower()}")
            return None
        return tag, tag_type, value


def run_cli(store: TagStore, command: Optional[List[str]] = None):
    """Run one command, or the interactive console when none is given."""
    console = TagConsole(store)
    if command:
        console.onecmd(" ".join(command))
        return
    try:
        console.cmdloop()
    except KeyboardInterrupt:
        print("\nInterrupted.")


def main():
    """Entry point for standalone CLI usage."""
    parser = argparse.ArgumentParser(description="Tag file console")
    parser.add_argument("--file", default="tags.txt", help="Tag file path")
    parser.add_argument("command", nargs=argparse.REMAINDER,
                        help="Optional one-shot command")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        store = TagStore(args.file)
    except TagStoreError as exc:
        print(f"Cannot open {args.file}: {exc}")
        raise SystemExit(1)

    with store:
        run_cli(store, args.command)


if __name__ == "__main__":
    main()
