from rest_framework import serializers
from .models import MediaFile


class MediaFileSerializer(serializers.ModelSerializer):
    class Meta:
        model = MediaFile
        fields = [
            "id", "filename", "url", "content_type", "size", "width", "height", "created_at", "updated_at",
        ]
        read_only_fields = fields
