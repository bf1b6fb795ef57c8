"""
ワード操作ユーティリティ。

16ビットワードの符号拡張とビットフィールド抽出を提供します。
デコーダと命令実装の両方から利用され、状態は持ちません。
"""

WORD_MASK = 0xFFFF

# @intent:utility_function nビットのフィールドを16ビットの2の補数表現へ符号拡張します。
# @intent:pre-condition bitsは1以上16以下である必要があります。
def sign_extend(value: int, bits: int) -> int:
    """
    下位`bits`ビットを符号付きフィールドとみなし、16ビットパターンへ符号拡張します。
    ビット`bits-1`が1であれば上位ビットを全て1に、0であれば全て0にします。
    """
    if not 1 <= bits <= 16:
        raise ValueError(f"Field width {bits} is not between 1 and 16.")
    upper_mask = (WORD_MASK << bits) & WORD_MASK
    if value & (1 << (bits - 1)):
        return (value | upper_mask) & WORD_MASK
    return value & ~upper_mask & WORD_MASK

# @intent:utility_function 16ビットワードをPythonの符号付き整数として解釈します。
def to_signed(word: int) -> int:
    word &= WORD_MASK
    return word - 0x10000 if word & 0x8000 else word

# @intent:utility_function 任意の整数を16ビットに切り詰めます。
def to_word(value: int) -> int:
    return value & WORD_MASK

# @intent:utility_function ワードからビットhi..lo（両端含む）を取り出します。
def field(word: int, hi: int, lo: int) -> int:
    return (word >> lo) & ((1 << (hi - lo + 1)) - 1)

# @intent:utility_function ビットフィールドを取り出し、符号付き整数として返します。
def signed_field(word: int, hi: int, lo: int) -> int:
    return to_signed(sign_extend(field(word, hi, lo), hi - lo + 1))
