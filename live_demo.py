#!/usr/bin/env python
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                            EFILE LIVE DEMO                                    ║
╚══════════════════════════════════════════════════════════════════════════════╝

Walks through efile on a throwaway directory tree:
- Encrypting file names and contents with one key
- Re-running encryption (already encrypted names are skipped)
- A wrong key failing without touching the tree
- Decrypting back to the original tree
"""

import os
import tempfile

from efile.config import TransformConfig
from efile.core_crypto.aead import NONCE_SIZE, TAG_SIZE
from efile.tree.orchestrator import Orchestrator


SAMPLE_TREE = {
    "docs/readme.txt": b"efile keeps names and contents private.\n",
    "docs/notes/todo.md": b"- buy milk\n- encrypt backups\n",
    "docs/photo.raw": bytes(range(256)) * 4,
}


def print_header(title):
    """Print a formatted section header"""
    print("\n" + "═" * 70)
    print(f"  {title}")
    print("═" * 70)


def print_step(step_num, description):
    """Print a numbered step"""
    print(f"\n  [{step_num}] {description}")


def print_tree(root):
    """Print every entry under root with its size"""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        depth = os.path.relpath(dirpath, root).count(os.sep)
        if dirpath != root:
            print("  " + "    " * depth + os.path.basename(dirpath) + "/")
        for name in sorted(filenames):
            size = os.path.getsize(os.path.join(dirpath, name))
            indent = "    " * (depth + (dirpath != root))
            print(f"  {indent}{name}  ({size} bytes)")


def build_tree(root):
    for rel, data in SAMPLE_TREE.items():
        path = os.path.join(root, *rel.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)


def only_entry(root):
    [name] = os.listdir(root)
    return os.path.join(root, name)


def main():

    print("\n" * 2)
    print("╔" + "═" * 68 + "╗")
    print("║" + " " * 68 + "║")
    print("║" + "EFILE - REVERSIBLE FILE TREE ENCRYPTION".center(68) + "║")
    print("║" + " " * 68 + "║")
    print("╚" + "═" * 68 + "╝")

    with tempfile.TemporaryDirectory(prefix="efile-demo-") as workdir:
        build_tree(workdir)
        key = "correct horse battery staple"
        orchestrator = Orchestrator(key, TransformConfig(quiet=False))

        print_header("PART 1: THE ORIGINAL TREE")
        print_tree(workdir)

        print_header("PART 2: ENCRYPTION")
        print_step("2.1", "Encrypting docs/ (names and contents)")
        report = orchestrator.encrypt([os.path.join(workdir, "docs")])
        print(f"\n  Result: {report.summary()}")
        print_tree(workdir)
        print(f"\n  Each file grew by {NONCE_SIZE + TAG_SIZE} bytes "
              f"({NONCE_SIZE}-byte nonce + {TAG_SIZE}-byte tag).")

        print_step("2.2", "Encrypting again (nothing changes)")
        report = orchestrator.encrypt([only_entry(workdir)])
        print(f"\n  Result: {report.summary()}")

        print_header("PART 3: WRONG KEY")
        intruder = Orchestrator("guess", TransformConfig(quiet=True))
        report = intruder.decrypt([only_entry(workdir)])
        print(f"\n  Result: {report.summary()}")
        for entry_error in report:
            print(f"  [X] {entry_error}")
        print("\n  The tree is untouched:")
        print_tree(workdir)

        print_header("PART 4: DECRYPTION")
        report = orchestrator.decrypt([only_entry(workdir)])
        print(f"\n  Result: {report.summary()}")
        print_tree(workdir)

        with open(os.path.join(workdir, "docs", "readme.txt"), "rb") as f:
            restored = f.read() == SAMPLE_TREE["docs/readme.txt"]
        print(f"\n  Round trip: {'[OK] IDENTICAL' if restored else '[X] DIFFERENT'}")

        print_header("PART 5: EVENT LOG SUMMARY")
        for event_type, count in sorted(orchestrator.events.counts().items(),
                                        key=lambda item: item[0].value):
            print(f"  - {event_type.name}: {count}")

    print("\n\n" + "═" * 70)
    print("  DEMONSTRATION COMPLETE!")
    print("═" * 70)


if __name__ == "__main__":
    main()
