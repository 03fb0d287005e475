# backend/media/views.py
import io
import logging

from django.conf import settings
from PIL import Image, UnidentifiedImageError
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from blog.listing import paginate
from core.authentication import AdminContext
from core.exceptions import NotFound, ValidationError
from .models import MediaFile
from .serializers import MediaFileSerializer

logger = logging.getLogger(__name__)


def _check_image(raw):
    try:
        with Image.open(io.BytesIO(raw)) as im:
            im.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValidationError("Uploaded file is not a valid image", details={"file": [str(exc)]}) from exc


class MediaListView(APIView):
    """Media library: GET lists uploads page by page, POST uploads one file (multipart field ``file``)."""
    parser_classes = [MultiPartParser, FormParser]

    def get(self, request):
        AdminContext.from_request(request).require_admin()
        page = paginate(MediaFile.objects.all(), request.query_params.get("page"),
                        request.query_params.get("page_size"))
        return Response({
            "success": True,
            "results": MediaFileSerializer(page.items, many=True).data,
            **page.as_meta(),
        })

    def post(self, request):
        AdminContext.from_request(request).require_admin()
        uploaded_file = request.FILES.get("file")
        if not uploaded_file:
            raise ValidationError("file is required", details={"file": ["This field is required."]})

        if uploaded_file.size > settings.MEDIA_MAX_UPLOAD_SIZE:
            raise ValidationError(
                "File too large",
                details={"file": [f"Maximum size is {settings.MEDIA_MAX_UPLOAD_SIZE} bytes."]},
            )

        content_type = uploaded_file.content_type or ""
        if not any(content_type.startswith(p) for p in settings.MEDIA_ALLOWED_CONTENT_TYPES):
            raise ValidationError("Unsupported file type", details={"file": [content_type or "unknown"]})

        raw = uploaded_file.read()
        _check_image(raw)
        obj = MediaFile.create_from_bytes(raw, uploaded_file.name, content_type)
        logger.info("Uploaded media %s (%s, %d bytes)", obj.id, content_type, obj.size)
        return Response(MediaFileSerializer(obj).data, status=status.HTTP_201_CREATED)


class MediaDetailView(APIView):
    def get(self, request, pk):
        AdminContext.from_request(request).require_admin()
        return Response(MediaFileSerializer(self._get(pk)).data)

    def delete(self, request, pk):
        AdminContext.from_request(request).require_admin()
        obj = self._get(pk)
        obj.delete()
        logger.info("Deleted media %s", pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def _get(self, pk):
        try:
            return MediaFile.objects.get(pk=pk)
        except MediaFile.DoesNotExist:
            raise NotFound(f"Media file {pk} not found") from None
