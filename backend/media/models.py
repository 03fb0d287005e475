# backend/media/models.py
import logging
import os
import uuid

from django.core.files.base import ContentFile
from django.core.files.images import get_image_dimensions
from django.core.files.storage import default_storage
from django.db import models
from django.utils import timezone

logger = logging.getLogger(__name__)


def _random_filename(original_name: str) -> str:
    ext = os.path.splitext(original_name)[1].lower()
    return f"{uuid.uuid4().hex}{ext or '.bin'}"


def upload_path(instance, filename):
    now = timezone.now()
    return f"uploads/{now:%Y/%m}/{_random_filename(filename)}"


class MediaFile(models.Model):
    """
    Media library entry (images). The file lives in the default storage;
    url, size, type and dimensions are recorded at upload time.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    file = models.FileField(upload_to=upload_path, max_length=512)
    filename = models.CharField(max_length=512)
    url = models.CharField(max_length=2048)
    content_type = models.CharField(max_length=100)
    size = models.PositiveIntegerField()
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.filename} ({self.id})"

    @classmethod
    def create_from_bytes(cls, file_bytes: bytes, filename: str, content_type: str) -> "MediaFile":
        """
        Stores the bytes and creates the record with detected dimensions.
        """
        content = ContentFile(file_bytes, name=filename)
        width, height = get_image_dimensions(content) if content_type.startswith("image/") else (None, None)
        obj = cls(
            filename=os.path.basename(filename),
            content_type=content_type,
            size=len(file_bytes),
            width=width,
            height=height,
        )
        obj.file.save(filename, content, save=False)
        obj.url = obj.file.url
        obj.save()
        return obj

    def delete(self, using=None, keep_parents=False):
        name = self.file.name
        result = super().delete(using=using, keep_parents=keep_parents)
        if name:
            default_storage.delete(name)
        return result
