"""
Helper classes to make writing unit tests for the relay core easier

The upstream services are replaced by small in-process ``aiohttp.web``
applications that keep their state in memory and record every request.
"""

import base64
import hashlib
import unittest
import posixpath
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from relay_core.schemas import config


def git_blob_sha(content: bytes) -> str:
    return hashlib.sha1(b"blob %d\0" % len(content) + content).hexdigest()


class FakeGitHub:
    """
    In-memory repository behind a subset of the GitHub contents API

    Conflicts can be injected in two ways: ``forced_conflicts`` answers the
    next write requests with 409 regardless of their marker, while
    ``interference`` changes the file of a path right before the next write
    requests to that path are evaluated, like a concurrent writer would do.
    Server errors are injected with ``write_failures`` for the next write
    requests or with ``failing_write`` for the n-th write request (from 1).
    """

    def __init__(self, token: str = "secret-token", owner: str = "octo", repo: str = "storage"):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.permissions = {"admin": False, "push": True, "pull": True}
        self.files: Dict[str, bytes] = {}
        self.requests: List[Tuple[str, str, Any]] = []
        self.headers: List[Dict[str, str]] = []
        self.forced_conflicts: int = 0
        self.lookup_failures: int = 0
        self.write_failures: int = 0
        self.failing_write: Optional[int] = None
        self.interference: Dict[str, int] = {}
        self.commits: int = 0

    def sha_of(self, path: str) -> str:
        return git_blob_sha(self.files[path])

    def put_file(self, path: str, content: bytes) -> str:
        self.files[path] = content
        return self.sha_of(path)

    def calls(self, method: str, path: Optional[str] = None) -> List[Tuple[str, str, Any]]:
        return [r for r in self.requests if r[0] == method and (path is None or r[1] == path)]

    def _content(self, path: str) -> Dict[str, Any]:
        return {
            "type": "file",
            "name": posixpath.basename(path),
            "path": path,
            "sha": self.sha_of(path),
            "size": len(self.files[path]),
            "html_url": f"https://github.example/{self.owner}/{self.repo}/blob/main/{path}",
            "download_url": f"https://raw.github.example/{self.owner}/{self.repo}/main/{path}"
        }

    def _commit(self, message: str) -> Dict[str, Any]:
        self.commits += 1
        sha = hashlib.sha1(f"commit {self.commits}".encode("UTF-8")).hexdigest()
        return {"sha": sha, "message": message, "html_url": f"https://github.example/commit/{sha}"}

    def _authorized(self, request: web.Request) -> bool:
        self.headers.append(dict(request.headers))
        return request.headers.get("Authorization") == f"token {self.token}"

    @staticmethod
    def _error(status: int, message: str) -> web.Response:
        return web.json_response({"message": message}, status=status)

    def _is_repository(self, request: web.Request) -> bool:
        return request.match_info["owner"] == self.owner and request.match_info["repo"] == self.repo

    async def handle_user(self, request: web.Request) -> web.Response:
        self.requests.append(("GET", "/user", None))
        if not self._authorized(request):
            return self._error(401, "Bad credentials")
        return web.json_response({"login": self.owner, "id": 1})

    async def handle_repository(self, request: web.Request) -> web.Response:
        self.requests.append(("GET", "/repos", None))
        if not self._authorized(request):
            return self._error(401, "Bad credentials")
        if not self._is_repository(request):
            return self._error(404, "Not Found")
        return web.json_response({"full_name": f"{self.owner}/{self.repo}", "permissions": self.permissions})

    async def handle_get(self, request: web.Request) -> web.Response:
        path = request.match_info["path"]
        self.requests.append(("GET", path, dict(request.query)))
        if not self._authorized(request):
            return self._error(401, "Bad credentials")
        if not self._is_repository(request):
            return self._error(404, "Not Found")
        if self.lookup_failures > 0:
            self.lookup_failures -= 1
            return self._error(500, "Server Error")

        if path in self.files:
            return web.json_response(self._content(path))

        prefix = path.rstrip("/") + "/" if path else ""
        entries = {}
        for name in sorted(self.files):
            if not name.startswith(prefix):
                continue
            child = name[len(prefix):].split("/")[0]
            child_path = prefix + child
            if child_path in self.files:
                entries[child] = self._content(child_path)
            else:
                entries[child] = {
                    "type": "dir",
                    "name": child,
                    "path": child_path,
                    "sha": hashlib.sha1(child_path.encode("UTF-8")).hexdigest(),
                    "size": 0,
                    "html_url": f"https://github.example/{self.owner}/{self.repo}/tree/main/{child_path}",
                    "download_url": None
                }
        if not entries and path:
            return self._error(404, "Not Found")
        return web.json_response(list(entries.values()))

    async def handle_put(self, request: web.Request) -> web.Response:
        path = request.match_info["path"]
        body = await request.json()
        self.requests.append(("PUT", path, body))
        if not self._authorized(request):
            return self._error(401, "Bad credentials")

        if self.interference.get(path, 0) > 0:
            self.interference[path] -= 1
            self.files[path] = f"concurrent write {self.commits}".encode("UTF-8")
            self._commit(f"Concurrent update of {path}")
        if self.forced_conflicts > 0:
            self.forced_conflicts -= 1
            return self._error(409, f"{path} is at a newer commit")
        if self.write_failures > 0 or self.failing_write == len(self.calls("PUT")):
            self.write_failures = max(self.write_failures - 1, 0)
            return self._error(500, "Server Error")

        exists = path in self.files
        sha = body.get("sha")
        if exists and sha is None:
            return self._error(422, "Invalid request.\n\n\"sha\" wasn't supplied.")
        if (exists and sha != self.sha_of(path)) or (not exists and sha is not None):
            return self._error(409, f"{path} does not match {sha}")

        self.files[path] = base64.b64decode(body["content"])
        return web.json_response(
            {"content": self._content(path), "commit": self._commit(body["message"])},
            status=200 if exists else 201
        )

    async def handle_delete(self, request: web.Request) -> web.Response:
        path = request.match_info["path"]
        body = await request.json()
        self.requests.append(("DELETE", path, body))
        if not self._authorized(request):
            return self._error(401, "Bad credentials")
        if path not in self.files:
            return self._error(404, "Not Found")
        if body.get("sha") != self.sha_of(path):
            return self._error(409, f"{path} does not match {body.get('sha')}")
        del self.files[path]
        return web.json_response({"content": None, "commit": self._commit(body["message"])})

    def make_app(self) -> web.Application:
        app = web.Application()
        contents = "/repos/{owner}/{repo}/contents/{path:.*}"
        app.add_routes([
            web.get("/user", self.handle_user),
            web.get("/repos/{owner}/{repo}", self.handle_repository),
            web.get(contents, self.handle_get),
            web.put(contents, self.handle_put),
            web.delete(contents, self.handle_delete)
        ])
        return app


class FakeTelegram:
    """
    Minimal Telegram bot API with a fixed list of updates and known chats
    """

    def __init__(self, token: str = "123456:telegram-token"):
        self.token = token
        self.updates = [
            {"update_id": 10 + i, "message": {"message_id": i, "chat": {"id": 42}, "text": f"message {i}"}}
            for i in range(5)
        ]
        self.chats = {"42"}
        self.sent: List[Dict[str, Any]] = []
        self.queries: List[Dict[str, str]] = []

    def _check(self, request: web.Request) -> Optional[web.Response]:
        if request.match_info["bot"] != f"bot{self.token}":
            return web.json_response({"ok": False, "error_code": 401, "description": "Unauthorized"}, status=401)
        return None

    async def handle_updates(self, request: web.Request) -> web.Response:
        failure = self._check(request)
        if failure is not None:
            return failure
        self.queries.append(dict(request.query))
        offset = int(request.query.get("offset", 0))
        limit = int(request.query.get("limit", 100))
        updates = [u for u in self.updates if u["update_id"] >= offset][:limit]
        return web.json_response({"ok": True, "result": updates})

    async def handle_me(self, request: web.Request) -> web.Response:
        failure = self._check(request)
        if failure is not None:
            return failure
        return web.json_response({
            "ok": True,
            "result": {"id": 123456, "is_bot": True, "first_name": "Relay", "username": "relay_bot"}
        })

    async def handle_send(self, request: web.Request) -> web.Response:
        failure = self._check(request)
        if failure is not None:
            return failure
        body = await request.json()
        if str(body.get("chat_id")) not in self.chats:
            return web.json_response(
                {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
                status=400
            )
        message = {"message_id": len(self.sent) + 1, "chat": {"id": body["chat_id"]}, "text": body["text"]}
        self.sent.append(message)
        return web.json_response({"ok": True, "result": message})

    def make_app(self) -> web.Application:
        app = web.Application()
        app.add_routes([
            web.get("/{bot}/getUpdates", self.handle_updates),
            web.get("/{bot}/getMe", self.handle_me),
            web.post("/{bot}/sendMessage", self.handle_send)
        ])
        return app


class FakeCloudinary:
    """
    Minimal Cloudinary upload API verifying the request signature

    Uploading the content ``b"corrupt"`` is rejected like a broken image.
    While ``incomplete`` is set, successful uploads answer without any identity.
    """

    def __init__(self, cloud_name: str = "demo", api_key: str = "cloud-key", api_secret: str = "cloud-secret"):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.uploads: List[Dict[str, Any]] = []
        self.incomplete = False

    @staticmethod
    def _error(status: int, message: str) -> web.Response:
        return web.json_response({"error": {"message": message}}, status=status)

    async def handle_upload(self, request: web.Request) -> web.Response:
        if request.match_info["cloud"] != self.cloud_name:
            return self._error(404, "Invalid cloud_name")
        form = await request.post()
        expected = hashlib.sha1(
            f"folder={form.get('folder')}&timestamp={form.get('timestamp')}{self.api_secret}".encode("UTF-8")
        ).hexdigest()
        if form.get("api_key") != self.api_key or form.get("signature") != expected:
            return self._error(401, "Invalid Signature")

        header, payload = form["file"].split(",", 1)
        content = base64.b64decode(payload)
        if content == b"corrupt":
            return self._error(400, "Invalid image file")

        image_format = header[len("data:image/"):].split(";")[0]
        public_id = f"{form['folder']}/image{len(self.uploads) + 1}"
        self.uploads.append({"public_id": public_id, "content": content, "folder": form["folder"]})
        if self.incomplete:
            return web.json_response({"format": image_format, "bytes": len(content)})
        return web.json_response({
            "public_id": public_id,
            "format": image_format,
            "width": 640,
            "height": 480,
            "bytes": len(content),
            "url": f"http://res.cloudinary.example/{self.cloud_name}/{public_id}.{image_format}",
            "secure_url": f"https://res.cloudinary.example/{self.cloud_name}/{public_id}.{image_format}"
        })

    def make_app(self) -> web.Application:
        app = web.Application()
        app.add_routes([web.post("/v1_1/{cloud}/auto/upload", self.handle_upload)])
        return app


class RecordingSleep:
    """
    Replacement of ``asyncio.sleep`` that only records the requested delays
    """

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


class BaseUpstreamTest(unittest.IsolatedAsyncioTestCase):
    """
    A base class for unit tests which need running fake upstream services

    If a subclass needs special setup or teardown functionality, it **MUST**
    call the superclasses setup and teardown methods: the superclass setup
    method at the beginning of the subclass setup method, the superclass
    teardown method at the end of the subclass teardown method.
    """

    async def asyncSetUp(self) -> None:
        self.servers: List[TestServer] = []
        self.github = FakeGitHub()
        self.telegram = FakeTelegram()
        self.cloudinary = FakeCloudinary()
        self.github_url = await self._serve(self.github.make_app())
        self.telegram_url = await self._serve(self.telegram.make_app())
        self.cloudinary_url = await self._serve(self.cloudinary.make_app())
        self.session = aiohttp.ClientSession()

    async def asyncTearDown(self) -> None:
        await self.session.close()
        for server in self.servers:
            await server.close()

    async def _serve(self, app: web.Application) -> str:
        server = TestServer(app)
        await server.start_server()
        self.servers.append(server)
        return str(server.make_url("/")).rstrip("/")

    def make_config(self, **github) -> config.CoreConfig:
        github_config = {
            "token": self.github.token,
            "owner": self.github.owner,
            "repo": self.github.repo,
            "base_url": self.github_url,
            "base_delay": 0
        }
        github_config.update(github)
        return config.CoreConfig(
            github=github_config,
            telegram={"bot_token": self.telegram.token, "base_url": self.telegram_url},
            cloudinary={
                "cloud_name": self.cloudinary.cloud_name,
                "api_key": self.cloudinary.api_key,
                "api_secret": self.cloudinary.api_secret,
                "base_url": self.cloudinary_url
            }
        )
