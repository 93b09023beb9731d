#  sbin main CLI
#  Install a single binary out of a program's Docker image
import json
import sys

from sbin.modules.cli import parse_args
from sbin.modules.errors import SbinError
from sbin.modules.finders.manifests import Platform
from sbin.modules.formatters import Tee
from sbin.modules.keepers.installer import install_program
from sbin.modules.keepers.listing import list_installed, render_installed_table


def run(args) -> int:
    # --- list mode ---
    if args.list_installed:
        programs = list_installed(args.out)
        if args.json:
            print(json.dumps([p.to_dict() for p in programs], indent=2))
        else:
            render_installed_table(programs)
        return 0

    # --- install mode ---
    try:
        platform = Platform.parse(args.platform)
    except ValueError as e:
        print(f"[!] Error: {e}")
        return 2

    confirm = (lambda question: True) if args.yes else None
    try:
        result = install_program(
            args.program,
            out_dir=args.out,
            temp_dir=args.temp,
            force=args.force,
            platform=platform,
            confirm=confirm,
            verbose=not args.quiet and not args.json,
        )
    except SbinError as e:
        print(f"[!] Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        # bad program reference
        print(f"[!] Error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    return 0


def main():
    args = parse_args()

    # set up logging/tee if requested
    log_f = None
    if args.log_file:
        log_f = open(args.log_file, "w", encoding="utf-8")
        sys.stdout = Tee(sys.stdout, log_f)
        sys.stderr = Tee(sys.stderr, log_f)

    try:
        code = run(args)
    finally:
        if log_f is not None:
            sys.stdout = sys.__stdout__
            sys.stderr = sys.__stderr__
            log_f.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
