from pathlib import PurePosixPath

DEFAULT_CONTENT_TYPE = 'application/octet-stream'

CONTENT_TYPES = {
    'html': 'text/html',
    'css': 'text/css',
    'js': 'application/javascript',
    'png': 'image/png',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'gif': 'image/gif',
    'svg': 'image/svg+xml',
    'json': 'application/json',
    'pdf': 'application/pdf',
    'zip': 'application/zip',
    # point clouds and Potree output
    'las': 'application/vnd.las',
    'laz': 'application/vnd.laszip',
    'bin': 'application/octet-stream',
    'hrc': 'application/octet-stream',
}


def determine_content_type(filename: str) -> str:
    extension = PurePosixPath(filename).suffix.lstrip('.').lower()
    return CONTENT_TYPES.get(extension, DEFAULT_CONTENT_TYPE)
