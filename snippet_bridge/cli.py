import json
import sys

from snippet_bridge.api.pipeline import ParseMiss, build_request
from snippet_bridge.config.env import configure_logging, get_bridge_config
from snippet_bridge.markup.kinds import KINDS


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(f"Usage: python -m snippet_bridge.cli <{'|'.join(KINDS)}> [file]  (reads stdin without file)")
        return 2
    configure_logging()
    kind = args[0]
    if len(args) > 1:
        try:
            with open(args[1], encoding="utf-8") as f:
                source = f.read()
        except OSError as e:
            print(str(e), file=sys.stderr)
            return 2
    else:
        source = sys.stdin.read()
    try:
        outcome = build_request(source, kind, kind_defaults=get_bridge_config().kind_defaults)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2
    if isinstance(outcome, ParseMiss):
        print(outcome.message, file=sys.stderr)
        return 1
    print(json.dumps({
        "request": outcome.to_message(),
        "descriptor": outcome.descriptor.to_dict() if outcome.descriptor else None,
    }, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
