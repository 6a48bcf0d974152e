from functools import lru_cache

from pixshare.blob_store import BlobStore, S3BlobStore


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    """
    FastAPI dependency returning the process-wide S3 blob store.

    The boto3 client is built on first use, so importing the app does
    not require AWS configuration.  Tests override this dependency with
    an in-memory store.
    """
    return S3BlobStore.from_settings()
