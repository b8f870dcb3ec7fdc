from dataclasses import dataclass
from dotenv import load_dotenv
import os

load_dotenv()


def _default_endpoint() -> str:
    region = os.getenv("DO_SPACE_REGION")
    if region:
        return f"https://{region}.digitaloceanspaces.com"
    return f"http://127.0.0.1:{os.getenv('MINIO_PORT', '9000')}"


@dataclass(frozen=True)
class Settings:
    # S3 / Spaces / MinIO
    s3_endpoint: str = os.getenv("S3_ENDPOINT", _default_endpoint())
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", os.getenv("DO_SPACE_KEY", "minioadmin"))
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", os.getenv("DO_SPACE_SECRET", "minioadmin"))
    s3_bucket: str = os.getenv("S3_BUCKET", os.getenv("DO_SPACE_NAME", "point-clouds"))
    s3_region: str = os.getenv("S3_REGION", os.getenv("DO_SPACE_REGION", "us-east-1"))
    s3_object_acl: str = os.getenv("S3_OBJECT_ACL", "")

    # Listing
    signed_url_ttl: int = int(os.getenv("SIGNED_URL_TTL", "300"))
    listing_max_depth: int = int(os.getenv("LISTING_MAX_DEPTH", "32"))
    listing_max_prefixes: int = int(os.getenv("LISTING_MAX_PREFIXES", "10000"))
    max_upload_files: int = int(os.getenv("MAX_UPLOAD_FILES", "10"))

    # PotreeConverter
    converter_path: str = os.getenv("POTREE_CONVERTER_PATH", "PotreeConverter")
    converter_work_dir: str = os.getenv("CONVERTER_WORK_DIR", "data/conversions")
    converter_max_concurrent: int = int(os.getenv("CONVERTER_MAX_CONCURRENT", "2"))
    converter_max_pending: int = int(os.getenv("CONVERTER_MAX_PENDING", "4"))

    # HTTP
    http_host: str = os.getenv("HOST", "0.0.0.0")
    http_port: int = int(os.getenv("PORT", "4000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
