"""
A small in-memory Dgraph stand-in for tests.

FakeDgraph understands just enough of the HTTP API for the queries this
service sends: `uid($uid)`, `eq(<pred>, $id)` and `has(<pred>)` roots, and
JSON set mutations with blank nodes. Set mutations merge field by field.
"""

from __future__ import annotations

import itertools
import json
import re
from typing import Any

import httpx

from core.dgraph import DgraphClient

ROOT_KEY_RE = re.compile(r"(\w+)\(func:")
EQ_RE = re.compile(r"eq\(([\w.]+), \$id\)")
HAS_RE = re.compile(r"has\(([\w.]+)\)")


class FakeDgraph:
    def __init__(self) -> None:
        self.nodes: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.schema: str | None = None
        self.abort_mutations = False
        self._uid_seq = itertools.count(1)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/query":
            return self._query(json.loads(request.content))
        if request.url.path == "/mutate":
            return self._mutate(json.loads(request.content))
        if request.url.path == "/alter":
            self.schema = request.content.decode("utf-8")
            return httpx.Response(200, json={"data": {"code": "Success", "message": "Done"}})
        if request.url.path == "/health":
            return httpx.Response(200, json=[{"instance": "alpha", "status": "healthy"}])
        return httpx.Response(404, text="not found")

    def _mint(self) -> str:
        return hex(next(self._uid_seq))

    def _expand(self, node: dict[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in node.items():
            if isinstance(value, dict) and "uid" in value:
                out[key] = dict(self.nodes.get(value["uid"], value))
            elif isinstance(value, list) and value and isinstance(value[0], dict):
                out[key] = [dict(self.nodes.get(v["uid"], v)) for v in value]
            else:
                out[key] = value
        return out

    def _query(self, body: dict[str, Any]) -> httpx.Response:
        q = body["query"]
        variables = body.get("variables") or {}

        has = HAS_RE.search(q)
        if has:
            count = sum(1 for node in self.nodes.values() if has.group(1) in node)
            return httpx.Response(200, json={"data": {"nodeCount": [{"nodeCount": count}]}})

        key = ROOT_KEY_RE.search(q).group(1)
        if "uid($uid)" in q:
            node = self.nodes.get(variables["$uid"])
            rows = [node] if node is not None else []
        else:
            predicate = EQ_RE.search(q).group(1)
            wanted = variables["$id"]
            rows = [n for n in self.nodes.values() if predicate in n and str(n[predicate]) == wanted]

        return httpx.Response(200, json={"data": {key: [self._expand(n) for n in rows]}})

    def _store(self, obj: dict[str, Any], blanks: dict[str, str]) -> str:
        uid = obj.get("uid")
        if uid is None or uid.startswith("_:"):
            name = uid[2:] if uid else f"anon{len(blanks)}"
            if name not in blanks:
                blanks[name] = self._mint()
            uid = blanks[name]

        node = self.nodes.setdefault(uid, {"uid": uid})
        for key, value in obj.items():
            if key == "uid":
                continue
            if isinstance(value, dict):
                node[key] = {"uid": self._store(value, blanks)}
            elif isinstance(value, list) and value and isinstance(value[0], dict):
                node[key] = [{"uid": self._store(v, blanks)} for v in value]
            else:
                node[key] = value
        return uid

    def _mutate(self, body: dict[str, Any]) -> httpx.Response:
        if self.abort_mutations:
            return httpx.Response(
                200,
                json={
                    "errors": [
                        {
                            "message": "Transaction has been aborted. Please retry",
                            "extensions": {"code": "Error"},
                        }
                    ]
                },
            )

        payload = body["set"]
        items = payload if isinstance(payload, list) else [payload]
        blanks: dict[str, str] = {}
        for item in items:
            self._store(item, blanks)

        # Dgraph only reports uids for named blank nodes.
        uids = {k: v for k, v in blanks.items() if not k.startswith("anon")}
        return httpx.Response(
            200,
            json={"data": {"code": "Success", "message": "Done", "queries": None, "uids": uids}},
        )


def make_client(handler) -> DgraphClient:
    return DgraphClient("http://dgraph.test:8080", transport=httpx.MockTransport(handler))


