import asyncio
import json
import logging
import os
import uuid
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# kind -> (디렉토리, 확장자)
MEDIA_KINDS = {
    "images": ".png",
    "videos": ".mp4",
    "audio": ".mp3",
}

class MediaStore:
    def __init__(self, base_dir: str = "./data/media"):
        self.base_dir = os.path.abspath(base_dir)
        for kind in MEDIA_KINDS:
            os.makedirs(os.path.join(self.base_dir, kind), exist_ok=True)

    async def save(self, user_id: str, kind: str, data: bytes, metadata: Optional[Dict[str, Any]] = None) -> str:
        if kind not in MEDIA_KINDS:
            raise ValueError(f"Unknown media kind: {kind}")
        filename = f"{uuid.uuid4()}{MEDIA_KINDS[kind]}"
        file_path = os.path.join(self.base_dir, kind, filename)
        sidecar = {"user_id": user_id, "size_bytes": len(data), **(metadata or {})}
        # 파일 쓰기는 스레드에서
        await asyncio.to_thread(self._write, file_path, data, sidecar)
        logger.info("Saved %s for user=%s (%d bytes)", filename, user_id, len(data))
        return f"/api/media/{kind}/{filename}"

    def _write(self, file_path: str, data: bytes, metadata: Dict[str, Any]) -> None:
        with open(file_path, "wb") as f:
            f.write(data)
        # 생성 메타데이터는 옆에 json으로 보관
        with open(file_path + ".json", "w", encoding="utf-8") as f:
            json.dump(metadata, f, default=str)

    def resolve(self, kind: str, filename: str) -> Optional[str]:
        if kind not in MEDIA_KINDS or os.path.basename(filename) != filename or not filename.endswith(MEDIA_KINDS[kind]):
            return None
        path = os.path.join(self.base_dir, kind, filename)
        return path if os.path.isfile(path) else None
