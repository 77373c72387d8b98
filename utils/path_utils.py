from pathlib import Path


# 获取项目根目录
BASE_DIR = Path(__file__).resolve().parents[1]

# 常用子目录路径
CONFIG_DIR = BASE_DIR / 'config'
LOG_DIR = BASE_DIR / 'log'


def resolve_path(path: str) -> Path:
    """将相对路径解析为相对于项目根目录的绝对路径"""
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return BASE_DIR / candidate

