"""Interactive helper that records the llama.cpp executable path in a .env file."""

from __future__ import annotations

import argparse
import os
import re
import sys

from .config import get_runner_search, load_gateway_config, settings
from .runner_discovery import find_runner_executable

ENV_KEY = "CHATGATE_LLAMA_PATH"


def update_env_content(content: str, llama_path: str) -> str:
    """Set ``CHATGATE_LLAMA_PATH`` in .env text, replacing an existing line."""
    line = f"{ENV_KEY}={llama_path}"
    pattern = re.compile(rf"^{ENV_KEY}=.*$", re.MULTILINE)
    if pattern.search(content):
        return pattern.sub(lambda _m: line, content)
    if content and not content.endswith("\n"):
        content += "\n"
    return f"{content}{line}\n"


def write_env_path(env_path: str, llama_path: str) -> None:
    content = ""
    if os.path.exists(env_path):
        with open(env_path, encoding="utf-8") as f:
            content = f.read()
    with open(env_path, "w", encoding="utf-8") as f:
        f.write(update_env_content(content, llama_path))


def _ask(prompt: str) -> str:
    try:
        return input(prompt).strip()
    except EOFError:
        return ""


def choose_path(found: str | None) -> str | None:
    if found:
        answer = _ask(f"\nDo you want to use the found executable: {found}? (Y/n) ")
        if answer.lower() != "n":
            return found
    while True:
        path = _ask("\nPlease enter the full path to your llama.cpp executable: ")
        if not path:
            return None
        if os.path.exists(path):
            return path
        print(f"Warning: The file at {path} does not exist or is not accessible.")
        if _ask("Do you want to continue anyway? (y/N) ").lower() == "y":
            return path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Set up the llama.cpp path for Chat Gateway.")
    parser.add_argument("--env-file", default=".env", help="dotenv file to update (default: .env)")
    parser.add_argument("--yes", action="store_true", help="accept the discovered executable without asking")
    args = parser.parse_args(argv)

    print("Chat Gateway - llama.cpp Setup")
    print("Searching for llama.cpp executable...")
    candidate_dirs, candidate_names = get_runner_search(load_gateway_config(settings.gateway_config_path))
    found = find_runner_executable(candidate_dirs, candidate_names)
    if not found:
        print("No llama.cpp executable found in common locations.")

    llama_path = found if (args.yes and found) else choose_path(found)
    if not llama_path:
        print("No path entered. Exiting...")
        return 1

    write_env_path(args.env_file, llama_path)
    print(f"\n{ENV_KEY} has been set to {llama_path} in {args.env_file}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
