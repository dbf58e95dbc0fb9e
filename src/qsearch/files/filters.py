from __future__ import annotations

from enum import Enum

from qsearch.models import DeviceFile

APK_MIME = "application/vnd.android.package-archive"

SYSTEM_EXTENSIONS = {
    "tmp",
    "temp",
    "cache",
    "log",
    "bak",
    "backup",
    "old",
    "orig",
    "swp",
    "swo",
    "part",
    "crdownload",
    "download",
    "tmpfile",
}

MEDIA_PREFIXES = ("image/", "video/")
AUDIO_PREFIXES = ("audio/",)
DOCUMENT_PREFIXES = (
    "application/pdf",
    "application/msword",
    "application/vnd.ms-word",
    "application/vnd.openxmlformats-officedocument.wordprocessingml",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml",
    "application/vnd.oasis.opendocument",
    "application/rtf",
    "application/x-rtf",
    "text/",
)


class FileType(str, Enum):
    PHOTOS_AND_VIDEOS = "photos_and_videos"
    MUSIC = "music"
    DOCUMENTS = "documents"
    APKS = "apks"
    OTHER = "other"


def file_extension(name: str) -> str | None:
    idx = name.rfind(".")
    if 0 < idx < len(name) - 1:
        return name[idx + 1 :].lower()
    return None


def is_apk(file: DeviceFile) -> bool:
    if (file.mime_type or "").lower() == APK_MIME:
        return True
    return file.display_name.lower().endswith(".apk")


def file_type(file: DeviceFile) -> FileType:
    if is_apk(file):
        return FileType.APKS
    mime = (file.mime_type or "").lower()
    if mime.startswith(MEDIA_PREFIXES):
        return FileType.PHOTOS_AND_VIDEOS
    if mime.startswith(AUDIO_PREFIXES):
        return FileType.MUSIC
    if mime.startswith(DOCUMENT_PREFIXES):
        return FileType.DOCUMENTS
    return FileType.OTHER


def is_hidden(file: DeviceFile) -> bool:
    return file.display_name.startswith(".")


def is_system_file(file: DeviceFile) -> bool:
    if is_hidden(file):
        return True
    ext = file_extension(file.display_name)
    if ext is None:
        return False
    # WhatsApp/Signal backups: crypt, crypt12, crypt14 ...
    if ext.startswith("crypt"):
        return ext[5:].isdigit() or ext == "crypt"
    return ext in SYSTEM_EXTENSIONS


def is_system_folder(file: DeviceFile) -> bool:
    return file.is_directory and file.display_name.lower().startswith("com.")


def is_in_trash(file: DeviceFile) -> bool:
    if file.display_name.lower() == ".trash":
        return True
    if not file.relative_path:
        return False
    for segment in file.relative_path.replace("\\", "/").split("/"):
        low = segment.strip().lower()
        if low == ".trash" or low.startswith(".trash-"):
            return True
    return False


def is_extension_excluded(name: str, excluded: set[str]) -> bool:
    ext = file_extension(name)
    return ext is not None and ext in excluded
