"""
Signed URL refresh for scenes and project thumbnails.

Scenes keep their media in Supabase storage behind signed URLs that expire
(seven days by default). Before a project is shown again, every signed link
is re-issued; public and foreign links are left alone.

Refresh is best-effort: a link that cannot be re-signed keeps its original
URL, and one failing link never affects the rest of the scene or batch.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import structlog

from schemas import Scene, ThumbnailRef
from services.link_reissuer import LinkReissuer, ReissueOutcome
from services.storage_links import LinkClass, classify, is_signed_url


@dataclass(frozen=True)
class RefreshStats:
    """Counts of signed links attempted, refreshed and kept after failure."""
    attempted: int = 0
    refreshed: int = 0
    failed: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[ReissueOutcome]) -> "RefreshStats":
        refreshed = sum(1 for o in outcomes if o.refreshed)
        failed = sum(1 for o in outcomes if o.failed)
        return cls(attempted=refreshed + failed, refreshed=refreshed, failed=failed)

    def __add__(self, other: "RefreshStats") -> "RefreshStats":
        return RefreshStats(
            attempted=self.attempted + other.attempted,
            refreshed=self.refreshed + other.refreshed,
            failed=self.failed + other.failed,
        )


class SceneUrlRefresher:
    """
    Refreshes signed media URLs on scenes.

    Example:
        >>> refresher = SceneUrlRefresher(reissuer, endpoint_prefix=settings.SUPABASE_URL)
        >>> scenes = await refresher.refresh_scenes(scenes)
    """

    def __init__(self, reissuer: LinkReissuer, endpoint_prefix: str, logger=None):
        self.reissuer = reissuer
        self.endpoint_prefix = endpoint_prefix
        self.logger = (logger if logger is not None else structlog.get_logger(__name__)).bind(
            service="scene_url_refresher"
        )

    async def _refresh_list(self, urls: List[Optional[str]]) -> List[ReissueOutcome]:
        async def refresh_item(url: Optional[str]) -> ReissueOutcome:
            if not url:
                return ReissueOutcome(url=url)
            return await self.reissuer.refresh_url(url, self.endpoint_prefix)

        return list(await asyncio.gather(*(refresh_item(u) for u in urls)))

    async def _refresh_scene(self, scene: Scene) -> Tuple[Scene, RefreshStats]:
        slots = {}
        for field in ("image_url", "audio_url", "video_url"):
            url = getattr(scene, field)
            if url:
                slots[field] = self.reissuer.refresh_url(url, self.endpoint_prefix)

        image_urls = scene.image_urls
        list_task = self._refresh_list(image_urls) if image_urls else None

        # All slots and list elements are in flight together
        fields = list(slots)
        awaitables = list(slots.values())
        if list_task is not None:
            awaitables.append(list_task)
        results = await asyncio.gather(*awaitables)

        update = {}
        outcomes: List[ReissueOutcome] = []
        for field, outcome in zip(fields, results):
            update[field] = outcome.url
            outcomes.append(outcome)

        if list_task is not None:
            list_outcomes = results[-1]
            update["image_urls"] = [o.url for o in list_outcomes]
            outcomes.extend(list_outcomes)

        return scene.model_copy(update=update), RefreshStats.from_outcomes(outcomes)

    async def refresh_scene(self, scene: Scene) -> Scene:
        """
        Refresh every populated media slot of one scene.

        Empty slots stay empty; public and unrelated links are copied as-is;
        signed links are re-issued, keeping the original URL on failure.
        Returns a new Scene; the input is not modified.
        """
        refreshed, _ = await self._refresh_scene(scene)
        return refreshed

    def needs_refresh(self, scenes: Sequence[Scene]) -> bool:
        """
        Whether a batch looks like it carries signed links.

        Only the first image link of the first scene is inspected.
        """
        if not scenes:
            return False
        first_url = scenes[0].first_image_url()
        return classify(first_url, self.endpoint_prefix) is LinkClass.SIGNED

    async def refresh_scenes(self, scenes: Sequence[Scene]) -> Sequence[Scene]:
        """
        Refresh signed URLs across a batch of scenes.

        Args:
            scenes: Scenes in display order

        Returns:
            The same ``scenes`` object when nothing looks signed (no backend
            calls), otherwise a new list with one refreshed scene per input
            scene, in the same order.
        """
        if not scenes:
            return scenes

        if not self.needs_refresh(scenes):
            self.logger.debug("signed_url_refresh_skipped", num_scenes=len(scenes))
            return scenes

        self.logger.info("refreshing_signed_urls", num_scenes=len(scenes))

        results = await asyncio.gather(*(self._refresh_scene(scene) for scene in scenes))

        stats = RefreshStats()
        for _, scene_stats in results:
            stats = stats + scene_stats

        self.logger.info(
            "signed_urls_refreshed",
            num_scenes=len(results),
            attempted=stats.attempted,
            refreshed=stats.refreshed,
            failed=stats.failed,
        )

        return [scene for scene, _ in results]

    async def refresh_thumbnails(self, thumbnails: Sequence[ThumbnailRef]) -> List[ThumbnailRef]:
        """
        Refresh signed project thumbnail URLs.

        Missing thumbnails stay missing and non-signed ones are returned
        unchanged. Output order matches input order.
        """
        if not any(is_signed_url(t.thumbnail_url) for t in thumbnails):
            return list(thumbnails)

        self.logger.info("refreshing_thumbnails", num_thumbnails=len(thumbnails))

        async def refresh_one(thumbnail: ThumbnailRef) -> Tuple[ThumbnailRef, ReissueOutcome]:
            url = thumbnail.thumbnail_url
            if not is_signed_url(url):
                return thumbnail, ReissueOutcome(url=url)
            outcome = await self.reissuer.refresh_url(url, self.endpoint_prefix)
            return thumbnail.model_copy(update={"thumbnail_url": outcome.url}), outcome

        results = await asyncio.gather(*(refresh_one(t) for t in thumbnails))
        stats = RefreshStats.from_outcomes([outcome for _, outcome in results])

        self.logger.info(
            "thumbnails_refreshed",
            num_thumbnails=len(results),
            refreshed=stats.refreshed,
            failed=stats.failed,
        )

        return [thumbnail for thumbnail, _ in results]
