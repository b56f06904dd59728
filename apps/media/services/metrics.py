from prometheus_client import Counter, Histogram

THUMBNAIL_REQUESTS = Counter(
    "media_thumbnail_requests_total",
    "Thumbnail lookups by how they were answered",
    ["outcome"]  # "cache", "storage", "generated", "animated"
)

RESIZE_LATENCY = Histogram(
    "media_resize_seconds",
    "Time spent resizing and encoding image bytes",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

IMAGES_UPLOADED = Counter(
    "media_images_uploaded_total",
    "Images saved to storage",
    ["type"]
)

IMAGES_DESTROYED = Counter(
    "media_images_destroyed_total",
    "Images removed along with their thumbnails"
)

SWEEP_UNUSED = Counter(
    "media_sweep_unused_total",
    "Images found unreferenced by the cleanup sweep",
    ["dry_run"]
)
