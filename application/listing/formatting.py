SIZE_UNITS = ('Bytes', 'KB', 'MB', 'GB', 'TB')


def format_file_size(size: int) -> str:
    """Render a byte count with base 1024 units, e.g. 1536 -> '1.5 KB'."""
    if size < 0:
        raise ValueError(f'Size must be non-negative, got {size}')
    if size == 0:
        return '0 Bytes'

    # floor(log1024(size)) for integers
    index = min((int(size).bit_length() - 1) // 10, len(SIZE_UNITS) - 1)
    value = f'{size / 1024 ** index:.2f}'.rstrip('0').rstrip('.')
    return f'{value} {SIZE_UNITS[index]}'
