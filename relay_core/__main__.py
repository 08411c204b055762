#!/usr/bin/env python3

import os
import sys
import asyncio
import argparse
import logging.config
from typing import List, Optional

import uvicorn

from relay_core import errors, settings as _settings
from relay_core.api.api import create_app
from relay_core.store import BatchUploader, ConflictAwareWriter, PendingFile, RemoteFileStore


def get_parser(program: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=program)

    commands = parser.add_subparsers(
        description="Available sub-commands: init, run, verify, upload",
        dest="command",
        required=True,
        metavar="<command>",
        help="the sub-command to be executed"
    )

    parser_init = commands.add_parser(
        "init",
        description="Initialize the project by creating the config file"
    )

    parser_run = commands.add_parser(
        "run",
        description="Run 'uvicorn' ASGI server to serve the relay core REST API"
    )

    parser_verify = commands.add_parser(
        "verify",
        description="Verify the configured GitHub token and the access to the repository"
    )

    parser_upload = commands.add_parser(
        "upload",
        description="Upload local files to the configured GitHub repository"
    )

    parser_init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file with the defaults"
    )
    parser_init.add_argument(
        "--path",
        type=str,
        metavar="p",
        help="Path of the newly created config file (defaults to the first config search path)"
    )

    parser_run.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrite config)"
    )
    parser_run.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrite config)"
    )
    parser_run.add_argument(
        "--config",
        type=str,
        metavar="config",
        default="config.json",
        help="Overwrite the config file (defaults to 'config.json')"
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging of all requests to the upstream services"
    )
    parser_run.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload"
    )
    parser_run.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="n",
        help="Number of worker processes (not valid with --reload)",
    )
    parser_run.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logs"
    )
    parser_run.add_argument(
        "--use-colors",
        action="store_true",
        help="Enable colorized output (may break file logs!)"
    )
    parser_run.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    parser_verify.add_argument(
        "--indent",
        type=int,
        default=4,
        metavar="n",
        help="Indent the JSON report with n spaces (default: 4)"
    )

    parser_upload.add_argument(
        "files",
        nargs="+",
        metavar="file",
        help="local file(s) to upload"
    )
    parser_upload.add_argument(
        "--path",
        type=str,
        required=True,
        metavar="p",
        help="Target path in the repository; a trailing slash uploads below that "
             "directory with unique names (always used like that for multiple files)"
    )
    parser_upload.add_argument(
        "--message",
        type=str,
        metavar="msg",
        help="Commit message (defaults to 'Upload <name>')"
    )
    parser_upload.add_argument(
        "--branch",
        type=str,
        metavar="name",
        help="Target branch (defaults to the configured default branch)"
    )

    return parser


def init_project(args: argparse.Namespace) -> int:
    path = args.path or os.path.abspath(_settings.CONFIG_PATHS[0])
    if os.path.exists(path) and not args.force:
        print(
            f"A config file has been found at {path!r} and will be used. If you want a "
            f"fresh configuration, remove the config file and run this command again.",
            file=sys.stderr
        )
        return 1

    _settings.store_configuration(path=path)
    print(
        f"A new config file has been created as {path!r}. Add the credentials of the "
        f"upstream services there (or use environment variables like 'GITHUB__TOKEN')."
    )
    return 0


def run_server(args: argparse.Namespace) -> int:
    _settings.CONFIG_PATHS.insert(0, args.config)
    settings = _settings.load_settings()

    if args.debug:
        settings.logging.root["level"] = "DEBUG"
        for handler in settings.logging.handlers:
            settings.logging.handlers[handler]["level"] = "DEBUG"

    port = args.port
    if port is None:
        port = settings.server.port
    host = args.host
    if host is None:
        host = settings.server.host

    app = create_app(settings=settings)

    logging.getLogger("relay_core").info(f"Server running at host {host} port {port}")
    uvicorn.run(
        "relay_core.api:api.app" if args.reload else app,
        port=port,
        host=host,
        reload=args.reload,
        workers=args.workers,
        log_level="debug" if args.debug else "info",
        log_config=settings.logging.model_dump(),
        access_log=not args.no_access_log,
        use_colors=args.use_colors,
        proxy_headers=True,
        root_path=args.root_path
    )
    return 0


async def _verify(settings: _settings.Settings):
    async with RemoteFileStore(settings.github) as store:
        return await store.verify_access()


def verify_access(args: argparse.Namespace) -> int:
    settings = _settings.load_settings()
    try:
        report = asyncio.run(_verify(settings))
    except errors.ConfigurationError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    print(report.model_dump_json(indent=args.indent))
    return 0 if report.authenticated and report.repo_access else 1


async def _upload(
        settings: _settings.Settings,
        files: List[PendingFile],
        path: str,
        message: Optional[str],
        branch: Optional[str]
):
    async with RemoteFileStore(settings.github) as store:
        writer = ConflictAwareWriter(
            store,
            max_attempts=settings.github.max_attempts,
            base_delay=settings.github.base_delay,
            default_branch=settings.github.default_branch,
            strict_lookup=settings.github.strict_lookup
        )
        if len(files) == 1:
            pending = files[0]
            return [await writer.upload(pending.content, path, pending.name, message, branch)]
        return await BatchUploader(writer).upload_all(files, path, message, branch)


def upload_files(args: argparse.Namespace) -> int:
    files = []
    for filename in args.files:
        try:
            with open(filename, "rb") as f:
                files.append(PendingFile(os.path.basename(filename), f.read()))
        except OSError as exc:
            print(f"Can't read local file {filename!r}: {exc.strerror or exc}", file=sys.stderr)
            return 1

    settings = _settings.load_settings()
    logging.config.dictConfig(settings.logging.model_dump())

    try:
        results = asyncio.run(_upload(settings, files, args.path, args.message, args.branch))
    except errors.BatchAborted as exc:
        for result in exc.completed:
            print(f"{result.file.path}\t{result.file.sha}\t{result.attempts}")
        print(f"Upload aborted: {exc.details}", file=sys.stderr)
        return 1
    except errors.RelayError as exc:
        print(f"Upload failed: {exc.details}", file=sys.stderr)
        return 1

    for result in results:
        print(f"{result.file.path}\t{result.file.sha}\t{result.attempts}")
    return 0


COMMAND_FUNCTIONS = {
    "init": init_project,
    "run": run_server,
    "verify": verify_access,
    "upload": upload_files
}


if __name__ == '__main__':
    program_name = sys.argv[0] if not sys.argv[0].endswith("__main__.py") else "relay_core"
    namespace = get_parser(program_name).parse_args(sys.argv[1:])
    exit(COMMAND_FUNCTIONS[namespace.command](namespace))
