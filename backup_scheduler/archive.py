import gzip
import os
import shutil
import zipfile

from .logger import get_logger

logger = get_logger(__name__)

GZIP_SUFFIX = ".gz"
ZIP_SUFFIX = ".zip"
COMPRESSED_SUFFIXES = (GZIP_SUFFIX, ZIP_SUFFIX)


def gzip_file(source_path: str, destination_path: str = None) -> str:
    destination_path = destination_path or source_path + GZIP_SUFFIX
    with open(source_path, "rb") as src, gzip.open(destination_path, "wb") as dst:
        shutil.copyfileobj(src, dst)
    logger.debug(f"Compressed {source_path} to {destination_path}")
    return destination_path


def gunzip_file(source_path: str, destination_path: str) -> str:
    with gzip.open(source_path, "rb") as src, open(destination_path, "wb") as dst:
        shutil.copyfileobj(src, dst)
    logger.debug(f"Decompressed {source_path} to {destination_path}")
    return destination_path


def zip_directory(source_dir: str, destination_path: str = None) -> str:
    """
    Packs ``source_dir`` into a zip container. Entries keep the directory's own
    name as their top-level folder, so extracting the archive gives back a single
    directory.
    """
    source_dir = os.path.normpath(source_dir)
    destination_path = destination_path or source_dir + ZIP_SUFFIX
    base = os.path.dirname(source_dir)

    with zipfile.ZipFile(destination_path, "w", compression=zipfile.ZIP_DEFLATED) as zipf:
        zipf.write(source_dir, os.path.relpath(source_dir, base))
        for root, dirs, files in os.walk(source_dir):
            dirs.sort()
            for name in dirs:
                path = os.path.join(root, name)
                zipf.write(path, os.path.relpath(path, base))
            for name in sorted(files):
                path = os.path.join(root, name)
                zipf.write(path, os.path.relpath(path, base))
    logger.debug(f"Packed {source_dir} into {destination_path}")
    return destination_path


def extract_zip(source_path: str, destination_dir: str) -> str:
    with zipfile.ZipFile(source_path, "r") as zipf:
        zipf.extractall(destination_dir)
    logger.debug(f"Extracted {source_path} into {destination_dir}")
    return destination_dir


def is_compressed(path: str) -> bool:
    return path.endswith(COMPRESSED_SUFFIXES)
