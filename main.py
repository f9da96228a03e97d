"""Writers' Room — dev launcher.

    python main.py                    serve the API with uvicorn in watch mode
    python main.py --write "theme"    write a whole screenplay headless, print it
"""

import argparse
import asyncio
import logging
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = os.getenv("BACKEND_PORT", "13013")


async def write_headless(theme: str, fmt: str) -> int:
    from backend import config
    from writers_room.export import export_script
    from writers_room.pipeline import FatalOrchestrationError, WritersRoom

    cfg = config.get_config()
    settings = config.pipeline_settings(cfg).model_copy(
        update={"turn_delay": 0, "scene_delay": 0}
    )
    room = WritersRoom(config.build_llm(cfg), settings)
    room.store.subscribe(
        lambda entry: print(f"[{entry.agent}] {entry.message}", file=sys.stderr)
    )

    try:
        await room.initialize(theme)
    except FatalOrchestrationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    await room.start_writing()

    if room.store.error:
        print(f"Error: {room.store.error}", file=sys.stderr)
        return 1
    print(export_script(room.store.state.script_lines, fmt))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Writers' Room dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Config storage directory (default: ./data)")
    parser.add_argument("--write", metavar="THEME", default=None,
                        help="Write a screenplay for THEME without the server")
    parser.add_argument("--format", choices=["fountain", "text"], default="fountain",
                        help="Output format for --write (default: fountain)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.write:
        from backend import config
        config.init_config(args.data_dir or Path("data"))
        sys.exit(asyncio.run(write_headless(args.write, args.format)))

    # Build env for the subprocess so the backend picks up the same data dir
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())

    print(f"Starting backend on http://localhost:{BACKEND_PORT} ...")
    proc = subprocess.Popen(
        ["uv", "run", "uvicorn", "backend.app:app", "--reload", "--host", HOST, "--port", BACKEND_PORT],
        cwd=ROOT, env=env,
    )
    try:
        proc.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
        proc.terminate()
        proc.wait()


if __name__ == "__main__":
    main()
