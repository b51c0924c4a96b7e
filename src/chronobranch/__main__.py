#!/usr/bin/env python3
"""
CLI for the chronobranch interpreter.

Usage:
    python -m chronobranch run FILE [--input VALUE ...] [--config FILE]
                                    [--numeric-policy P] [--stale-merge S]
                                    [--dump-timeline OUT.yaml|OUT.json] [--show-state]
    python -m chronobranch check FILE
    python -m chronobranch tokens FILE
    python -m chronobranch inspect DUMP VAR [--at TIME]

Examples:
    # Run a program, answering its `input` statements from the console
    python -m chronobranch run examples/branching.cb

    # Run with scripted input and keep the whole timeline
    python -m chronobranch run examples/branching.cb --input 7 --input yes \
        --dump-timeline run.yaml

    # What did x hold at time 2 of that run?
    python -m chronobranch inspect run.yaml x --at 2

Settings may also come from the environment:
    CHRONOBRANCH_NUMERIC_POLICY=saturate python -m chronobranch run prog.cb
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml


def _read_source(path_str: str):
    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return source_path, None
    return source_path, source_path.read_text()


def _print_state(timeline) -> None:
    from .runtime import format_value

    print("--- final state ---")
    for name, entries in timeline.snapshot().items():
        latest = entries[-1]
        print(f"{name}@{latest.time} = {format_value(latest.value)}")


def _write_dump(path: Path, data) -> None:
    suffix = path.suffix.lower()
    with path.open("w", encoding="utf-8") as fp:
        if suffix == ".json":
            json.dump(data, fp, indent=2)
        else:
            yaml.safe_dump(data, fp, default_flow_style=False, sort_keys=False)


def _load_dump(path: Path):
    with path.open("r", encoding="utf-8") as fp:
        if path.suffix.lower() == ".json":
            return json.load(fp)
        return yaml.safe_load(fp) or {}


def cmd_check(args):
    """Lex and parse a program, reporting diagnostics."""
    from . import tokenize, parse, ChronoError, BranchStatement

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        tokens = tokenize(source, str(source_path))
        program = parse(tokens, filename=str(source_path), source=source)
    except ChronoError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    statements = list(program.walk())
    branches = sum(1 for s in statements if isinstance(s, BranchStatement))
    print(f"OK: {source_path.name} - {len(statements)} statement(s), {branches} branch(es)")
    return 0


def cmd_tokens(args):
    """Print the token stream of a program."""
    from . import Lexer, ChronoError

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        for token in Lexer(source, str(source_path)):
            start = token.span.start
            print(f"{start.line:>4}:{start.column:<4} {token.type.name:<16} {token.lexeme}")
    except ChronoError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1
    return 0


def cmd_run(args):
    """Run a program."""
    from . import compile_and_run, load_config, ChronoError
    from .runtime import ConsoleInput, ScriptedInput, ConsoleOutput

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        config = load_config(args.config, overrides={
            "numeric_policy": args.numeric_policy,
            "stale_merge": args.stale_merge,
        })
    except ChronoError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    if args.input is not None:
        input_source = ScriptedInput(args.input)
    else:
        input_source = ConsoleInput(echo_prompts=config.echo_prompts)

    result = compile_and_run(
        source,
        inputs=input_source,
        config=config,
        output_sink=ConsoleOutput(),
        filename=str(source_path),
    )

    if result.diagnostics.diagnostics:
        print(result.diagnostics.format_all(), file=sys.stderr)

    if args.show_state and result.timeline is not None:
        _print_state(result.timeline)

    if args.dump_timeline and result.timeline is not None:
        dump_path = Path(args.dump_timeline)
        data = {
            "provenance": result.provenance.to_dict() if result.provenance else {},
            "timeline": result.timeline.to_dict(),
        }
        try:
            _write_dump(dump_path, data)
        except OSError as e:
            print(f"Error: cannot write {dump_path}: {e}", file=sys.stderr)
            return 1
        print(f"Timeline written to: {dump_path}", file=sys.stderr)

    return 0 if result.success else 1


def cmd_inspect(args):
    """Show a variable's history from a timeline dump."""
    from . import ChronoError, TimelineStore, format_value

    dump_path = Path(args.dump)
    if not dump_path.exists():
        print(f"Error: File not found: {dump_path}", file=sys.stderr)
        return 1

    try:
        data = _load_dump(dump_path)
        store = TimelineStore.from_dict(data.get("timeline", data))
    except (ValueError, KeyError, TypeError, AttributeError, yaml.YAMLError) as e:
        print(f"Error: {dump_path} is not a timeline dump: {e}", file=sys.stderr)
        return 1

    try:
        if args.at is not None:
            print(format_value(store.read_at(args.var, args.at)))
        else:
            entries = store.entries(args.var)
            if not entries:
                store.read(args.var)
            for entry in entries:
                print(f"{entry.time:>4}  {format_value(entry.value)}")
    except ChronoError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1
    return 0


def main(argv=None):
    from . import __version__

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-v', '--verbose', action='store_true',
                        help='Log engine activity (writes, branches, merges) to stderr')

    parser = argparse.ArgumentParser(
        prog='python -m chronobranch',
        description='chronobranch branch/merge interpreter',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', parents=[common],
                                         help='Check a program for syntax errors')
    check_parser.add_argument('file', help='Program source file')

    # tokens command
    tokens_parser = subparsers.add_parser('tokens', parents=[common],
                                          help='Print the token stream of a program')
    tokens_parser.add_argument('file', help='Program source file')

    # run command
    run_parser = subparsers.add_parser('run', parents=[common], help='Run a program')
    run_parser.add_argument('file', help='Program source file')
    run_parser.add_argument('-i', '--input', action='append', metavar='VALUE',
                            help='Value for the next `input` statement (can be repeated); '
                                 'without any, input is read from stdin')
    run_parser.add_argument('-c', '--config', metavar='FILE', help='YAML settings file')
    run_parser.add_argument('--numeric-policy', choices=['flag', 'saturate', 'wrap'],
                            help='What arithmetic does on overflow (default: flag)')
    run_parser.add_argument('--stale-merge', choices=['commit', 'reject'],
                            help='What a merge does if its variable changed after the branch')
    run_parser.add_argument('--dump-timeline', metavar='FILE',
                            help='Write every variable\'s timeline to FILE (.yaml or .json)')
    run_parser.add_argument('--show-state', action='store_true',
                            help='Print the final value of every variable')

    # inspect command
    inspect_parser = subparsers.add_parser('inspect', parents=[common],
                                           help='Show a variable\'s history from a timeline dump')
    inspect_parser.add_argument('dump', help='Dump written by run --dump-timeline')
    inspect_parser.add_argument('var', help='Variable name')
    inspect_parser.add_argument('--at', type=int, metavar='TIME',
                                help='Show only the value held at TIME')

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'tokens':
        return cmd_tokens(args)
    elif args.action == 'run':
        return cmd_run(args)
    elif args.action == 'inspect':
        return cmd_inspect(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
