from .build_image_task import DockerBuildImageTask
from .copy_files_task import CopyFilesTask
from .push_image_task import DockerPushImageTask

__all__ = ["CopyFilesTask", "DockerBuildImageTask", "DockerPushImageTask"]
