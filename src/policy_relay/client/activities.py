"""Meal logging with face verification, and profile-picture caching."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from loguru import logger

from policy_relay.client.api_client import RelayAPIClient
from policy_relay.client.errors import MealEvaluationError
from policy_relay.client.store import FoodEntry, LocalCache
from policy_relay.client.uploads import ImageUploader


class MealLogger:
    """Upload a meal photo, have it verified against the user's face, log it.

    The saved face is the cached profile picture; the selfie is taken with
    the meal and uploaded by the caller beforehand.
    """

    def __init__(self, api: RelayAPIClient, cache: LocalCache, uploader: ImageUploader) -> None:
        self.api = api
        self.cache = cache
        self.uploader = uploader

    def log_meal(self, image_path: Union[str, Path], title: str, selfie_url: str) -> FoodEntry:
        saved_face = self.cache.get_profile_picture()
        if not saved_face:
            raise MealEvaluationError("No profile picture on file to verify against")

        meal_url = self.uploader.upload(image_path, name=title)
        result = self.api.evaluate_meal(saved_face, selfie_url, meal_url)
        if not result.success:
            raise MealEvaluationError("Failed to process the meal image. Please try again.")

        entry = FoodEntry(
            id=uuid.uuid4().hex,
            title=title,
            image_uri=meal_url,
            timestamp=datetime.now(timezone.utc),
            verified=result.verified,
        )
        self.cache.append_food_entry(entry)

        if entry.verified:
            logger.info("Meal {title} uploaded and verified", title=title)
        else:
            logger.warning("Meal {title} logged but the selfie did not match", title=title)
        return entry

    def history(self) -> list[FoodEntry]:
        return self.cache.load_food_entries()


class ProfileManager:
    """Keeps the profile picture URL used as the reference face."""

    def __init__(self, cache: LocalCache, uploader: ImageUploader) -> None:
        self.cache = cache
        self.uploader = uploader

    def update_picture(self, image_path: Union[str, Path]) -> str:
        url = self.uploader.upload(image_path, name="profile")
        self.cache.set_profile_picture(url)
        logger.info("Profile picture updated")
        return url
