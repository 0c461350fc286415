"""Command line entry point for the generators."""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from app.generators.scaffold import GeneratorError, generate_controller_test


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m app.generators", description="Application generators")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scaffold = subparsers.add_parser("scaffold", help="Generate controller tests for a resource")
    scaffold.add_argument("name", help="Resource name, e.g. Post or blog_post")
    scaffold.add_argument("--namespace", default=None, help="Namespace, e.g. admin")
    scaffold.add_argument("--singleton", action="store_true", help="Singular resource without index")
    scaffold.add_argument("--root", type=Path, default=Path("."), help="Project root (default: .)")
    scaffold.add_argument("--force", action="store_true", help="Overwrite existing files")
    scaffold.add_argument("--pretend", action="store_true", help="Print instead of writing")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        generated = generate_controller_test(
            args.name,
            namespace=args.namespace,
            singleton=args.singleton,
            root=args.root,
            force=args.force,
            pretend=args.pretend,
        )
    except GeneratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.pretend:
        print(generated.source, end="")
    else:
        print(f"      create  {generated.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
