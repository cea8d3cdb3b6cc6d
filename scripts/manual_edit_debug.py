"""One-off script for debugging an edit round trip against the real API."""

from pathlib import Path

from config.settings import load_config
from modules.pipelines.image_edit import ImageEditClient
from modules.services.storage_service import StorageService
from modules.ui.callbacks import build_callbacks
from modules.utils.logging import setup_logging


def main() -> None:
    # 1. 准备真实配置与服务对象
    config = load_config()
    setup_logging(config)
    client = ImageEditClient.from_config(config)
    storage = StorageService(Path("debug_outputs"))
    callbacks = build_callbacks(config, client=client, storage=storage)

    # 2. 上传测试图像（请按需替换）
    init_image_path = Path("tests/assets/debug_input.png")
    if not init_image_path.exists():
        raise FileNotFoundError(f"缺少初始图像: {init_image_path}")

    session, _, _, status = callbacks["on_upload"](str(init_image_path), None)
    print("上传:", status)

    # 3. 先做预设分离，再生成两张场景变体
    session, _, _, status, _, _ = callbacks["on_preset"](session, "object", "", "")
    print("分离:", status)
    session, _, _, status, _, _ = callbacks["on_submit_context"](
        session, "on a wooden table next to a window", "landscape", ""
    )
    print("场景:", status)

    for index in range(len(session.history)):
        path = storage.save_image(session.history[index], index)
        print("已保存:", path.resolve())


if __name__ == "__main__":
    main()
