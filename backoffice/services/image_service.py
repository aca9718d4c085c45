"""Product image uploads and cleanup of files no product refers to."""
import logging
import posixpath
from dataclasses import dataclass, field
from typing import List

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils import timezone
from django.utils.crypto import get_random_string
from PIL import Image, UnidentifiedImageError

from catalog.models import ProductImage

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
# Pillow format -> stored extension
ALLOWED_FORMATS = {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp"}

MB = 1024 * 1024


def image_dir() -> str:
    return settings.AYNBEAUTY["PRODUCT_IMAGE_DIR"]


def format_size(size: int) -> str:
    return f"{size / MB:.2f} MB"


def _detect_format(upload) -> str:
    try:
        with Image.open(upload) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        fmt = None
    finally:
        upload.seek(0)
    return fmt


class ImageUploadService:

    @staticmethod
    def validate(files) -> List[str]:
        """Check every upload before anything is stored. Returns the Pillow format of each file."""
        max_files = settings.AYNBEAUTY["PRODUCT_IMAGE_MAX_FILES"]
        max_bytes = settings.AYNBEAUTY["PRODUCT_IMAGE_MAX_BYTES"]

        if not files:
            raise ValueError("No files uploaded")
        if len(files) > max_files:
            raise ValueError(f"Maximum {max_files} images allowed")

        formats = []
        for f in files:
            if (f.content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
                raise ValueError(f"Invalid file type for {f.name}. Only JPEG, PNG, and WebP are allowed.")
            if f.size > max_bytes:
                raise ValueError(f"File {f.name} is too large. Maximum size is {format_size(max_bytes)}.")
            fmt = _detect_format(f)
            if fmt not in ALLOWED_FORMATS:
                raise ValueError(f"File {f.name} is not a valid JPEG, PNG, or WebP image.")
            formats.append(fmt)
        return formats

    @staticmethod
    def store(files) -> List[dict]:
        formats = ImageUploadService.validate(files)
        stamp = int(timezone.now().timestamp() * 1000)

        uploaded = []
        for i, (f, fmt) in enumerate(zip(files, formats)):
            filename = f"product_{stamp}_{get_random_string(10).lower()}_{i}{ALLOWED_FORMATS[fmt]}"
            name = default_storage.save(posixpath.join(image_dir(), filename), f)
            uploaded.append({
                "url": default_storage.url(name),
                "filename": posixpath.basename(name),
                "originalName": f.name,
                "size": f.size,
            })

        logger.info("Stored %s product image(s)", len(uploaded))
        return uploaded


@dataclass
class ImageAnalysis:
    files_on_disk: List[str]
    referenced: set
    unused_files: List[str]
    missing_files: List[str]
    sizes: dict = field(default_factory=dict)

    @property
    def total_unused_size(self) -> int:
        return sum(self.sizes.get(f, 0) for f in self.unused_files)


class ImageCleanupService:

    @staticmethod
    def _stored_files() -> List[str]:
        try:
            _, files = default_storage.listdir(image_dir())
        except FileNotFoundError:
            return []
        return sorted(files)

    @staticmethod
    def analyze() -> ImageAnalysis:
        local_prefix = default_storage.url(image_dir() + "/")
        urls = list(ProductImage.objects.values_list("image_url", flat=True))

        referenced = {posixpath.basename(u) for u in urls if u}
        # Only URLs served from our own storage can be missing from it.
        local_refs = {posixpath.basename(u) for u in urls if u and u.startswith(local_prefix)}

        files = ImageCleanupService._stored_files()
        on_disk = set(files)
        sizes = {f: default_storage.size(posixpath.join(image_dir(), f)) for f in files}

        return ImageAnalysis(
            files_on_disk=files,
            referenced=referenced,
            unused_files=[f for f in files if f not in referenced],
            missing_files=sorted(local_refs - on_disk),
            sizes=sizes,
        )

    @staticmethod
    def report() -> dict:
        a = ImageCleanupService.analyze()
        now = timezone.now()

        details = []
        for name in a.unused_files:
            modified = default_storage.get_modified_time(posixpath.join(image_dir(), name))
            details.append({
                "filename": name,
                "size": a.sizes[name],
                "sizeFormatted": format_size(a.sizes[name]),
                "lastModified": modified,
                "daysOld": (now - modified).days,
            })

        return {
            "totalFiles": len(a.files_on_disk),
            "referencedFiles": len(a.referenced),
            "unusedFiles": len(a.unused_files),
            "missingFilesCount": len(a.missing_files),
            "totalUnusedSize": a.total_unused_size,
            "totalUnusedSizeFormatted": format_size(a.total_unused_size),
            "unusedFilesDetails": details,
            "missingFiles": a.missing_files,
        }

    @staticmethod
    def cleanup(*, execute: bool = True, only=None) -> dict:
        a = ImageCleanupService.analyze()
        targets = a.unused_files
        if only:
            wanted = set(only)
            targets = [f for f in targets if f in wanted]

        deleted, failed, saved = [], [], 0
        for name in targets:
            path = posixpath.join(image_dir(), name)
            if execute:
                try:
                    default_storage.delete(path)
                except OSError as e:
                    logger.warning("Could not delete unused image %s: %s", path, e)
                    failed.append({"filename": name, "error": str(e)})
                    continue
                logger.info("Deleted unused image %s", path)
            deleted.append(name)
            saved += a.sizes.get(name, 0)

        return {
            "mode": "execute" if execute else "dry-run",
            "totalFilesToDelete": len(targets),
            "deletedFiles": deleted,
            "failedFiles": failed,
            "spaceSaved": saved,
            "spaceSavedFormatted": format_size(saved),
        }
