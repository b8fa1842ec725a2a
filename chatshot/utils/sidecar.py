"""Fixed-width binary records appended after encoded image bytes.

Each integer field is written as a two-byte big-endian signed integer, in
field declaration order, with no length prefix or delimiter. A reader has
to know the field list up front and reads ``2 * len(fields)`` bytes from
the end of the file.
"""

import struct
from pathlib import Path
from typing import Dict, Sequence, Type, TypeVar, Union

import aiofiles
from pydantic import BaseModel


FIELD_SIZE = 2
FIELD_FORMAT = ">h"

ModelT = TypeVar("ModelT", bound=BaseModel)


def encode_record(record: Union[BaseModel, Dict[str, int]]) -> bytes:
    """Encode a record's integer fields in declaration order.

    Raises:
        TypeError: If a field value is not an integer
        struct.error: If a value does not fit in a signed 16-bit integer
    """
    values = record.model_dump() if isinstance(record, BaseModel) else dict(record)

    buffer = bytearray()
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f'Value at key "{key}" is not an integer.')
        buffer += struct.pack(FIELD_FORMAT, value)
    return bytes(buffer)


def record_size(fields: Sequence[str]) -> int:
    return FIELD_SIZE * len(fields)


def decode_record(data: bytes, fields: Sequence[str]) -> Dict[str, int]:
    """Decode the trailing record from ``data``.

    Only the last ``2 * len(fields)`` bytes are read, so ``data`` may be a
    whole output file.
    """
    size = record_size(fields)
    if len(data) < size:
        raise ValueError(f"Need {size} bytes for {len(fields)} fields, got {len(data)}")

    tail = data[len(data) - size:]
    values = struct.unpack(">" + "h" * len(fields), tail)
    return dict(zip(fields, values))


def decode_model(data: bytes, model: Type[ModelT]) -> ModelT:
    """Decode the trailing record into a pydantic model."""
    fields = list(model.model_fields)
    return model(**decode_record(data, fields))


def split_payload(data: bytes, fields: Sequence[str]) -> bytes:
    """Return the image bytes without the trailing record."""
    return data[:len(data) - record_size(fields)]


async def append_record(path: Union[str, Path], record: Union[BaseModel, Dict[str, int]]) -> int:
    """Append an encoded record to a file.

    Returns:
        Number of bytes written
    """
    encoded = encode_record(record)
    async with aiofiles.open(path, 'ab') as f:
        await f.write(encoded)
    return len(encoded)
