"""Temporary file lifecycle and atomic commit of finished encodes."""

import logging
import os
import shutil
import tempfile

from smart_press.errors import CommitError
from smart_press.utils.validation import ensure_output_dir, validate_file_exists

logger = logging.getLogger(__name__)

TEMP_PREFIX = "smart_press_"


def create_temp_path(extension, temp_dir=None):
    """Allocate a unique, empty temporary file.

    The file is created on disk so concurrent calls can never pick the
    same name.

    Args:
        extension: File extension without the dot
        temp_dir: Directory for the file (default: system temp)

    Returns:
        str: Path to the new file
    """
    if temp_dir is not None:
        os.makedirs(temp_dir, exist_ok=True)

    fd, path = tempfile.mkstemp(
        prefix=TEMP_PREFIX, suffix=f".{extension.lstrip('.')}", dir=temp_dir
    )
    os.close(fd)
    return path


def write_temp_file(data, extension, temp_dir=None):
    """Write bytes to a fresh temporary file.

    Args:
        data: Bytes to write
        extension: File extension without the dot
        temp_dir: Directory for the file (default: system temp)

    Returns:
        str: Path to the written file

    Raises:
        OSError: If the file cannot be written (the file is removed first)
    """
    path = create_temp_path(extension, temp_dir)
    try:
        with open(path, "wb") as handle:
            handle.write(data)
    except OSError:
        delete(path)
        raise
    return path


@validate_file_exists
@ensure_output_dir
def move_or_copy(src, dst, overwrite=True):
    """Move a finished file to its destination.

    Tries an atomic rename first. When that fails (e.g. across devices),
    copies into a sibling temp file of the destination, renames it into
    place and deletes the source. The destination is never observable in
    a half-written state.

    Args:
        src: Finished source file
        dst: Destination path
        overwrite: Replace an existing destination

    Returns:
        bool: True on success

    Raises:
        CommitError: If neither move nor copy succeeded
    """
    if not overwrite and os.path.exists(dst):
        raise CommitError(f"Destination already exists: {dst}")

    try:
        os.replace(src, dst)
        return True
    except OSError as e:
        logger.debug("Rename %s -> %s failed, copying instead: %s", src, dst, e)

    staging = None
    try:
        fd, staging = tempfile.mkstemp(
            prefix=f".{TEMP_PREFIX}", dir=os.path.dirname(os.path.abspath(dst))
        )
        os.close(fd)
        shutil.copyfile(src, staging)
        os.replace(staging, dst)
    except OSError as e:
        delete(staging)
        raise CommitError(f"Unable to move {src} to {dst}: {e}") from e

    delete(src)
    return True


def delete(path):
    """Delete a file, ignoring missing files and errors.

    Args:
        path: File to delete, None is accepted

    Returns:
        bool: True if a file was removed
    """
    if not path:
        return False

    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Could not delete %s: %s", path, e)
        return False


def cleanup(paths, keep=()):
    """Delete several files, skipping the ones listed in keep.

    Args:
        paths: Iterable of paths (None entries are ignored)
        keep: Paths that must survive
    """
    keep = {os.fspath(p) for p in keep if p}
    for path in paths:
        if path and os.fspath(path) not in keep:
            delete(path)
