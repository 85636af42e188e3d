# tests/fakes.py
import io
import json
import re

import httpx

from stretchfs_storage.storage.paths import normalize, parent
from stretchfs_storage.stretchfs import TOKEN_HEADER

TEST_TOKEN = "test-token"
UPDATED_AT = "2024-05-01T12:00:00Z"


class TrackingStream(io.BytesIO):
    """BytesIO that remembers whether it was read to the end."""

    drained = False

    def read(self, size=-1):
        chunk = super().read(size)
        if not chunk:
            self.drained = True
        return chunk


def _parse_multipart(request: httpx.Request):
    boundary = request.headers["content-type"].split("boundary=")[1].encode()
    fields, files = {}, {}
    for part in request.content.split(b"--" + boundary)[1:-1]:
        head, _, content = part[2:].partition(b"\r\n\r\n")
        content = content[:-2]
        name = re.search(rb'; name="([^"]*)"', head).group(1).decode()
        filename = re.search(rb'filename="([^"]*)"', head)
        if filename:
            ctype = re.search(rb"Content-Type: ([^\r\n]+)", head)
            files[name] = (
                filename.group(1).decode(),
                content,
                ctype.group(1).decode() if ctype else None,
            )
        else:
            fields[name] = content.decode()
    return fields, files


class FakeStretchFS:
    """
    In-memory StretchFS backend speaking the client's wire protocol.
    Mount it with `httpx.MockTransport(backend.handler)`.
    """

    def __init__(self, token: str = TEST_TOKEN, page_size: int = 100):
        self.token = token
        self.page_size = page_size
        self.files = {}
        self.folders = set()
        self.requests = []
        self.upload_error = None

    def add_file(self, path: str, content: bytes, mime_type: str = "text/plain"):
        path = normalize(path)
        self.files[path] = (content, mime_type)
        self._add_parents(path)

    def add_folder(self, path: str):
        path = normalize(path)
        self.folders.add(path)
        self._add_parents(path)

    def _add_parents(self, path: str):
        folder = parent(path)
        while folder:
            self.folders.add(folder)
            folder = parent(folder)

    def _item(self, path: str) -> dict:
        if path in self.files:
            content, mime_type = self.files[path]
            return {
                "path": path,
                "folder": False,
                "size": len(content),
                "mimeType": mime_type,
                "updatedAt": UPDATED_AT,
            }
        return {"path": path, "folder": True, "size": 0, "mimeType": None, "updatedAt": UPDATED_AT}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get(TOKEN_HEADER) != self.token:
            return httpx.Response(401, json={"message": "Invalid token"})

        route = request.url.path
        if route == "/file/upload":
            return self._upload(request)

        body = json.loads(request.content or b"{}")
        path = normalize(body.get("path", ""))

        if route == "/file/detail":
            if path in self.files or path in self.folders or path == "":
                return httpx.Response(200, json=self._item(path))
            return httpx.Response(404, json={"message": "File not found"})

        if route == "/file/download":
            if path not in self.files:
                return httpx.Response(404, json={"message": "File not found"})
            return httpx.Response(200, content=self.files[path][0])

        if route == "/file/remove":
            if path not in self.files:
                return httpx.Response(404, json={"message": "File not found"})
            del self.files[path]
            return httpx.Response(200, json={"success": True})

        if route == "/file/folderCreate":
            self.add_folder(path)
            return httpx.Response(200, json={"success": True})

        if route == "/file/folderRemove":
            if path not in self.folders:
                return httpx.Response(404, json={"message": "Folder not found"})
            prefix = path + "/"
            self.folders = {f for f in self.folders if f != path and not f.startswith(prefix)}
            self.files = {k: v for k, v in self.files.items() if not k.startswith(prefix)}
            return httpx.Response(200, json={"success": True})

        if route == "/file/list":
            children = sorted(
                p for p in list(self.files) + list(self.folders) if parent(p) == path and p
            )
            offset = int(body.get("cursor") or 0)
            page = children[offset: offset + self.page_size]
            has_more = offset + self.page_size < len(children)
            return httpx.Response(
                200,
                json={
                    "files": [self._item(p) for p in page],
                    "cursor": str(offset + self.page_size) if has_more else None,
                    "hasMore": has_more,
                },
            )

        if route == "/file/downloadUrl":
            url = f"https://cdn.example.test/{path}"
            if body.get("ttl"):
                url += f"?expires={body['ttl']}"
            return httpx.Response(200, json={"url": url})

        return httpx.Response(404, json={"message": f"Unknown route {route}"})

    def _upload(self, request: httpx.Request) -> httpx.Response:
        if self.upload_error:
            status, message = self.upload_error
            return httpx.Response(status, json={"message": message})
        fields, files = _parse_multipart(request)
        filename, content, mime_type = files["file"]
        path = normalize(f"{fields['path']}/{filename}")
        self.add_file(path, content, mime_type)
        return httpx.Response(200, json=self._item(path))


