import argparse
import asyncio
import sys
from pathlib import Path

from slate.slate_config import load_config
from slate.slate_datatypes import SlateError
from slate.slate_engine import InteractiveEngine
from slate.slate_logging import setup_logging
from slate.slate_results import Empty, ExecutionResult


# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


def print_result(result: ExecutionResult) -> None:
    if isinstance(result, Empty):
        return
    text = str(result)
    if text:
        print(text)


def build_engine(args) -> InteractiveEngine:
    config = load_config(args.config)
    if args.refs:
        config.refs_file = args.refs
    if args.log_level:
        config.log_level = args.log_level
    setup_logging(config.log_level, config.log_format)
    config.apply()
    return InteractiveEngine(
        working_dir=str(Path.cwd()),
        default_imports=config.default_imports,
        cache_dir=config.cache_dir,
        http_config=config.http_config,
    )


async def run_script_file(engine: InteractiveEngine, file_path: str):
    """Run a script file non-interactively and exit with appropriate status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    try:
        result = await engine.execute(source)
    except SlateError as e:
        print(e.format_error(), file=sys.stderr)
        raise SystemExit(1)
    print_result(result)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="slate", description="Interactive Python statement host")
    parser.add_argument("script", nargs="?", help="run this file as a single statement and exit")
    parser.add_argument("--refs", help="preloaded reference file")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ...")
    return parser.parse_args(argv)


async def main(argv=None):
    """Run a script file when provided, otherwise start the interactive console."""
    args = parse_args(argv)
    try:
        engine = build_engine(args)
    except SlateError as e:
        print(e.format_error(), file=sys.stderr)
        raise SystemExit(2)

    if args.script:
        await run_script_file(engine, args.script)
        return

    print("SLATE console v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    try:
        await engine.initialize()
    except SlateError as e:
        print(e.format_error(), file=sys.stderr)

    while True:
        try:
            raw = await ainput(">>> ")
            if raw == "":
                raise EOFError
            line = raw.rstrip("\r\n")

            if not line.strip():
                continue
            if line.strip() == "exit":
                break

            result = await engine.execute(line)
            print_result(result)

        except EOFError:
            print("\nExiting.")
            break
        except SlateError as e:
            # Pretty, location-aware message
            print(e.format_error(), file=sys.stderr)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")


if __name__ == "__main__":
    run()
