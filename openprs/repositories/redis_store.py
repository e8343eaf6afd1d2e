"""Redis-backed persistence for pull request documents, snapshots and charts."""

from __future__ import annotations

from typing import Iterable, Optional

from redis import Redis

from openprs.models.board import ChartKind, ChartPoint, PullRequestDocument, PullRequestState, Snapshot


class RedisBoardStore:
    """Stores per-spec pull request documents and derived reporting data in Redis."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    def replace_pull_requests(self, spec: str, documents: Iterable[PullRequestDocument]) -> int:
        key = self._prs_key(spec)
        mapping = {str(doc.number): doc.model_dump_json() for doc in documents}
        pipeline = self._client.pipeline()
        pipeline.delete(key)
        if mapping:
            pipeline.hset(key, mapping=mapping)
        pipeline.execute()
        return len(mapping)

    def get_pull_request(self, spec: str, number: int) -> Optional[PullRequestDocument]:
        data = self._client.hget(self._prs_key(spec), str(number))
        if not data:
            return None
        return PullRequestDocument.model_validate_json(data)

    def list_pull_requests(
        self,
        spec: str,
        state: PullRequestState | None = None,
    ) -> list[PullRequestDocument]:
        values = self._client.hvals(self._prs_key(spec))
        documents = [PullRequestDocument.model_validate_json(value) for value in values]
        if state is not None:
            documents = [doc for doc in documents if doc.state is state]
        documents.sort(key=lambda doc: doc.number)
        return documents

    def replace_snapshots(self, spec: str, snapshots: Iterable[Snapshot]) -> int:
        key = self._snapshots_key(spec)
        mapping = {snapshot.month: snapshot.model_dump_json() for snapshot in snapshots}
        pipeline = self._client.pipeline()
        pipeline.delete(key)
        if mapping:
            pipeline.hset(key, mapping=mapping)
        pipeline.execute()
        return len(mapping)

    def list_snapshots(self, spec: str) -> list[Snapshot]:
        values = self._client.hvals(self._snapshots_key(spec))
        snapshots = [Snapshot.model_validate_json(value) for value in values]
        snapshots.sort(key=lambda snapshot: snapshot.month)
        return snapshots

    def replace_chart(self, series: str, kind: ChartKind, points: Iterable[ChartPoint]) -> int:
        key = self._chart_key(series, kind)
        payload = [point.model_dump_json() for point in points]
        pipeline = self._client.pipeline()
        pipeline.delete(key)
        if payload:
            pipeline.rpush(key, *payload)
        pipeline.execute()
        return len(payload)

    def get_chart(self, series: str, kind: ChartKind) -> list[ChartPoint]:
        entries = self._client.lrange(self._chart_key(series, kind), 0, -1)
        return [ChartPoint.model_validate_json(entry) for entry in entries]

    def set_last_sync(self, sync_id: str, finished_at: str) -> None:
        self._client.hset("sync:last", mapping={"sync_id": sync_id, "finished_at": finished_at})

    def get_last_sync(self) -> dict[str, str]:
        return self._client.hgetall("sync:last") or {}

    @staticmethod
    def _prs_key(spec: str) -> str:
        return f"prs:{spec}"

    @staticmethod
    def _snapshots_key(spec: str) -> str:
        return f"snapshots:{spec}"

    @staticmethod
    def _chart_key(series: str, kind: ChartKind) -> str:
        return f"charts:{series}:{kind.value}"
