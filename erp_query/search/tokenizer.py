#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
トークナイザー
索引用トークン生成（全体値・単語・2-gram・3-gram）
"""

import re
from typing import Set

# 空白と区切り記号（全角カンマ・読点・句点・セミコロンを含む）
WORD_SPLIT_PATTERN = re.compile(r'[\s,，、。；;.]+')


def tokenize(text: str) -> Set[str]:
    """
    フィールド値を検索用トークン集合に変換

    Args:
        text (str): フィールド値

    Returns:
        set: 小文字化した全体値・単語・2文字/3文字の部分文字列
    """
    lower_text = text.lower()

    tokens = {lower_text}

    tokens.update(word for word in WORD_SPLIT_PATTERN.split(lower_text) if word)

    if len(lower_text) >= 2:
        tokens.update(lower_text[i:i + 2] for i in range(len(lower_text) - 1))

    if len(lower_text) >= 3:
        tokens.update(lower_text[i:i + 3] for i in range(len(lower_text) - 2))

    return tokens
