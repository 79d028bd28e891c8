import asyncio
import os
import sys
from pathlib import Path

from linebasic.basic_runtime import LineRunner

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def print_side_effects(result):
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            print(effect.get('message', ''))
        elif effect.get('topics') == ['stderr']:
            print(effect.get('message', ''), file=sys.stderr)

async def run_script_file(file_path: str):
    """Feed a file through the interpreter line by line and exit with appropriate status."""
    runner = LineRunner()
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    syntax_errors = 0
    for raw in source.splitlines(keepends=True):
        if not raw.strip():
            continue
        if not raw.endswith("\n"):
            raw += "\n"
        result = runner.handle_line(raw)
        print_side_effects(result)
        if result.status == 'error' and result.statement is None:
            syntax_errors += 1
    if syntax_errors:
        raise SystemExit(1)

async def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if not arg.startswith("-"):
            await run_script_file(arg)
            return

    print("linebasic REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = LineRunner()
    prompt = os.environ.get("BASIC_PROMPT", "> ")

    while True:
        try:
            raw = await ainput(prompt)
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            # Stored lines keep their text verbatim, so only the terminator is normalized.
            if not raw.endswith("\n"):
                raw += "\n"
            result = runner.handle_line(raw)
            print_side_effects(result)

        except EOFError:
            print("\nExiting.")
            break

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
