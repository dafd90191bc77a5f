import io
import os
import typing
import zipfile

from mapreduce.common import constants
from mapreduce.common.exceptions import PackagingError
from mapreduce.common.job.job_descriptor import JobDescriptor
from mapreduce.common.logging import Logging

logger = Logging.get_logger(__name__)

# Entries get a fixed timestamp so identical sources produce identical archives.
ZIP_ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)
ZIP_ENTRY_PERMISSIONS = 0o644 << 16


def _zip_entry(arcname: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=ZIP_ENTRY_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = ZIP_ENTRY_PERMISSIONS
    return info


def package_artifact(source_paths: typing.List[str], job_descriptor: JobDescriptor = None) -> bytes:
    """
    Bundles a function's source files into a deployable zip archive.

    :param source_paths: Handler source followed by the shared modules it imports, stored flat at the archive root
    :param job_descriptor: Descriptor added to the archive as jobinfo.json
    :return: Archive bytes
    """
    if not source_paths:
        raise PackagingError("Nothing to package", "no source files given")

    buffer = io.BytesIO()
    arcnames = set()
    with zipfile.ZipFile(buffer, 'w') as zipf:
        for path in source_paths:
            arcname = os.path.basename(path)
            if arcname in arcnames or (job_descriptor is not None and arcname == constants.JOB_DESCRIPTOR_FILENAME):
                raise PackagingError("Duplicate archive entry", f"{arcname} from {path}")
            arcnames.add(arcname)
            try:
                with open(path, 'rb') as source:
                    zipf.writestr(_zip_entry(arcname), source.read())
            except OSError as e:
                raise PackagingError("Unable to read source file", f"{path}: {e}")

        if job_descriptor is not None:
            zipf.writestr(_zip_entry(constants.JOB_DESCRIPTOR_FILENAME), job_descriptor.to_json())

    code = buffer.getvalue()
    logger.debug(f"Packaged {sorted(arcnames)} into {len(code)} bytes")
    return code


def write_artifact(code: bytes, zip_path: str):
    """Keeps a copy of a packaged archive on disk."""
    try:
        with open(zip_path, 'wb') as fh:
            fh.write(code)
    except OSError as e:
        raise PackagingError("Unable to write archive", f"{zip_path}: {e}")
