"""展示名排序工具。"""

import unicodedata

_GERMAN_FOLDS = str.maketrans({"ß": "ss", "ẞ": "ss"})


def display_name_key(name: str) -> tuple[str, str]:
    """按展示名排序的区域感知键。

    先做 NFKD 分解并去掉附加符号（Ä 视同 A，DIN 5007-1 规则），再忽略大小写；
    原始字符串作为第二键，保证折叠后相同的名字仍有确定顺序。
    """
    folded = unicodedata.normalize("NFKD", name.translate(_GERMAN_FOLDS))
    base = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return base.casefold().strip(), name
