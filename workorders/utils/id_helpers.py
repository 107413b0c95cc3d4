# workorders/utils/id_helpers.py
import random
import string
import time
import uuid


def generate_entry_id(prefix: str) -> str:
    # millisecond timestamp + random suffix keeps rapid successive appends distinct
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def generate_work_order_id() -> str:
    return f"wo-{uuid.uuid4().hex}"
