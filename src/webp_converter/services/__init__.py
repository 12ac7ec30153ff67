from .image_codec import decode_image, encode_webp
from .ledger import ConversionLedger
from .s3_downloader import S3Downloader
from .s3_uploader import S3Uploader

__all__ = [
    "decode_image",
    "encode_webp",
    "ConversionLedger",
    "S3Downloader",
    "S3Uploader",
]
