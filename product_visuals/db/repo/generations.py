# product_visuals/db/repo/generations.py
from typing import Any

import asyncpg
import orjson
import structlog

from product_visuals.db.repo.base import GenerationRepository
from product_visuals.dto.generation_job import GenerationJob
from product_visuals.dto.product import Product
from product_visuals.dto.scene import Scene

logger = structlog.get_logger(__name__)


def _dumps(value: Any) -> str:
    return orjson.dumps(value).decode()


def _loads(value: str | bytes | None, default: Any = None) -> Any:
    if value is None:
        return default
    return orjson.loads(value)


class PostgresGenerationRepository(GenerationRepository):
    """JSON columns are sent and read as text and (de)serialized with orjson."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_job(self, job_id: str) -> GenerationJob | None:
        sql = "SELECT * FROM generation_jobs WHERE id = $1;"
        async with self.pool.acquire() as con:
            row = await con.fetchrow(sql, job_id)
        if row is None:
            return None
        return GenerationJob(
            id=row["id"],
            request_id=row["request_id"],
            owner_id=row["owner_id"],
            product_id=row["product_id"],
            scene_id=row["scene_id"],
            shot_options=_loads(row["shot_options"], {}),
            status=row["status"],
            shots=_loads(row["shots"], []),
            results=_loads(row["results"], []),
            progress_percent=row["progress_percent"],
            completed_count=row["completed_count"],
            total_count=row["total_count"],
            attempts=row["attempts"],
            error=row["error"],
            created_at=row["created_at"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
        )

    async def save_job(self, job: GenerationJob) -> None:
        data = job.model_dump(mode="json", include={"shot_options", "shots", "results"})
        sql = """
            INSERT INTO generation_jobs (
                id, request_id, owner_id, product_id, scene_id, shot_options, status,
                shots, results, progress_percent, completed_count, total_count, attempts,
                error, created_at, started_at, completed_at
            ) VALUES ($1, $2, $3, $4, $5, $6::json, $7, $8::json, $9::json, $10, $11, $12, $13, $14, $15, $16, $17)
            ON CONFLICT (id) DO UPDATE SET
                status = EXCLUDED.status,
                shots = EXCLUDED.shots,
                results = EXCLUDED.results,
                progress_percent = EXCLUDED.progress_percent,
                completed_count = EXCLUDED.completed_count,
                total_count = EXCLUDED.total_count,
                attempts = EXCLUDED.attempts,
                error = EXCLUDED.error,
                started_at = EXCLUDED.started_at,
                completed_at = EXCLUDED.completed_at;
        """
        async with self.pool.acquire() as con:
            await con.execute(
                sql,
                job.id,
                job.request_id,
                job.owner_id,
                job.product_id,
                job.scene_id,
                _dumps(data["shot_options"]),
                job.status.value,
                _dumps(data["shots"]),
                _dumps(data["results"]),
                job.progress_percent,
                job.completed_count,
                job.total_count,
                job.attempts,
                job.error,
                job.created_at,
                job.started_at,
                job.completed_at,
            )
        logger.debug("Job saved", job_id=job.id, status=job.status.value, progress=job.progress_percent)

    async def get_product(self, product_id: str) -> Product | None:
        sql = """
            SELECT id, owner_id, name, analyzed_attributes, final_attributes,
                   front_image_url, back_image_url, reference_images
            FROM products WHERE id = $1;
        """
        async with self.pool.acquire() as con:
            row = await con.fetchrow(sql, product_id)
        if row is None:
            return None
        return Product(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            analyzed=_loads(row["analyzed_attributes"]),
            final=_loads(row["final_attributes"]),
            front_image_url=row["front_image_url"],
            back_image_url=row["back_image_url"],
            reference_images=_loads(row["reference_images"], []),
        )

    async def get_scene(self, scene_id: str) -> Scene | None:
        sql = "SELECT id, owner_id, name, attributes, reference_image_url FROM scenes WHERE id = $1;"
        async with self.pool.acquire() as con:
            row = await con.fetchrow(sql, scene_id)
        if row is None:
            return None
        return Scene(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            reference_image_url=row["reference_image_url"],
            **_loads(row["attributes"], {}),
        )
