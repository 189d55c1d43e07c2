"""Matching requested image names against a container runtime's images and tarballs."""

from __future__ import annotations

import logging
import os
import stat
from typing import Protocol, runtime_checkable

log = logging.getLogger(__name__)

_DOCKER_HUB_PREFIX = "docker.io/"
_LIBRARY_PREFIX = "library/"


@runtime_checkable
class ImageGetter(Protocol):
    """Anything that can list the images a container runtime holds."""

    def get_images(self) -> list[str]:
        """Return the names of all images known to the runtime."""
        ...


def is_file(image):
    """Return True if *image* names an existing path that is not a directory."""
    try:
        info = os.stat(image)
    except (OSError, ValueError):
        return False
    return not stat.S_ISDIR(info.st_mode)


def contains_version_part(image_tag):
    """Return True if the image name carries a ``:tag`` after its registry part."""
    if ":" not in image_tag:
        return False
    slash = image_tag.find("/")
    if slash == -1:
        # A plain library image such as ``postgres:13``.
        return True
    return ":" in image_tag[slash:]


def canonical_image_name(image):
    """Append ``:latest`` unless the image name already carries a tag."""
    if contains_version_part(image):
        return image
    return f"{image}:latest"


def image_names_equal(requested_image_name, runtime_image_name):
    """Compare names as given, then with the requested name made canonical."""
    if requested_image_name == runtime_image_name:
        return True
    return canonical_image_name(requested_image_name) == runtime_image_name


def docker_special_image_name_equal(requested_image_name, runtime_image_name):
    """Compare names after stripping the ``docker.io/`` and ``library/`` prefixes."""
    if requested_image_name.startswith(_DOCKER_HUB_PREFIX):
        return docker_special_image_name_equal(
            requested_image_name[len(_DOCKER_HUB_PREFIX):], runtime_image_name
        )
    if requested_image_name.startswith(_LIBRARY_PREFIX):
        return image_names_equal(requested_image_name[len(_LIBRARY_PREFIX):], runtime_image_name)
    return False


def find_runtime_image(requested_image, runtime_images):
    """Return the runtime image matching *requested_image*, or None if there is none."""
    runtime_images = list(runtime_images)
    for runtime_image in runtime_images:
        if image_names_equal(requested_image, runtime_image):
            return runtime_image
    for runtime_image in runtime_images:
        if docker_special_image_name_equal(requested_image, runtime_image):
            return runtime_image
    return None


def find_images(runtime, requested_images):
    """Split requested images into those found in the runtime and those that are tarball files.

    Returns a pair ``(images_from_runtime, images_from_tar)``; requested names that are
    neither are logged and dropped.
    """
    try:
        runtime_images = list(runtime.get_images())
    except Exception as exc:
        raise RuntimeError(f"failed to fetch list of existing images from runtime: {exc}") from exc

    images_from_runtime: list[str] = []
    images_from_tar: list[str] = []
    for requested in requested_images:
        if is_file(requested):
            images_from_tar.append(requested)
            log.debug("Selected image '%s' is a file", requested)
            continue
        found = find_runtime_image(requested, runtime_images)
        if found is not None:
            images_from_runtime.append(found)
            log.debug("Selected image '%s' (found as '%s') in runtime", requested, found)
            continue
        log.warning(
            "Image '%s' is not a file and couldn't be found in the container runtime", requested
        )
    return images_from_runtime, images_from_tar