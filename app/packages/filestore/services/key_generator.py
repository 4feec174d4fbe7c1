"""对象 key 生成器：为每个文件版本生成不可猜测的唯一 key。"""

from __future__ import annotations

import uuid


class KeyGenerator:
    """基于 UUID4 的随机 key，碰撞概率可以忽略。"""

    def generate(self) -> str:
        return uuid.uuid4().hex


key_generator = KeyGenerator()
