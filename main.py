"""sma console entry point."""

try:
    from cli.app import cli
except ModuleNotFoundError:
    # console_script 실행 시 프로젝트 루트가 sys.path에 없을 수 있음
    import os
    import sys

    sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
    from cli.app import cli


def main() -> None:
    """sma CLI 실행 (cli.app:cli 위임)"""
    cli(prog_name="sma")


if __name__ == "__main__":
    main()
