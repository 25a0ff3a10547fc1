"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반 ``sma`` 명령입니다. SageMaker 작업/엔드포인트를 조회하고
대기, 로그 출력, 중지와 이미지 URI 조회를 수행합니다.

명령어 구조:
    sma --version
    sma image-uri xgboost --version 1.5-1 --region us-east-1
    sma describe training my-job
    sma wait endpoint my-endpoint
    sma logs training my-job --wait
    sma stop processing my-job
    sma config show

Usage:
    $ sma describe training my-job
    $ python -m cli.app describe training my-job
"""

import dataclasses
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 sys.path에 추가 (core, smsdk 임포트를 위함)
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import boto3  # noqa: E402
import click  # noqa: E402
from botocore.exceptions import ClientError  # noqa: E402
from click import Context  # noqa: E402
from rich.console import Console  # noqa: E402
from rich.logging import RichHandler  # noqa: E402

from core.config import SDKConfig, get_version, load_config, resolve_config_path  # noqa: E402
from core.exceptions import SMError, format_error_for_user  # noqa: E402

# WARNING 레벨로 설정하여 INFO 로그가 명령 출력에 섞이지 않도록 함
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

VERSION = get_version()

console = Console()
err_console = Console(stderr=True)

DESCRIBE_TARGETS = ("training", "processing", "transform", "tuning", "compilation", "endpoint", "model")
WAIT_TARGETS = ("training", "processing", "transform", "tuning", "compilation", "endpoint")
LOG_TARGETS = ("training", "processing", "transform")
STOP_TARGETS = ("training", "processing", "transform", "tuning")


class SMAGroup(click.Group):
    """SMError/ClientError를 빨간 메시지와 종료 코드 1로 변환하는 Click 그룹"""

    def invoke(self, ctx: Context):
        try:
            return super().invoke(ctx)
        except (SMError, ClientError) as e:
            err_console.print(f"[red]오류: {format_error_for_user(e)}[/red]")
            raise SystemExit(1) from e


def _enable_verbose_logging() -> None:
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    for name in ("smsdk", "core"):
        target = logging.getLogger(name)
        target.setLevel(logging.DEBUG)
        target.addHandler(handler)
        target.propagate = False


def _make_session(region: str | None, profile: str | None):
    """명령 실행용 smsdk Session 생성"""
    from smsdk.session import Session

    boto_session = boto3.Session(region_name=region, profile_name=profile)
    return Session(boto_session=boto_session)


def _get_session(ctx: Context):
    obj = ctx.ensure_object(dict)
    if obj.get("session") is None:
        obj["session"] = _make_session(obj.get("region"), obj.get("profile"))
    return obj["session"]


@click.group(cls=SMAGroup)
@click.version_option(VERSION, prog_name="sma")
@click.option("-r", "--region", default=None, help="AWS 리전 (기본: 설정 파일 또는 boto3 기본 체인)")
@click.option("-p", "--profile", default=None, help="AWS 프로파일")
@click.option("-v", "--verbose", is_flag=True, help="DEBUG 로그 출력")
@click.pass_context
def cli(ctx: Context, region: str | None, profile: str | None, verbose: bool) -> None:
    """SageMaker 작업/엔드포인트 관리 CLI"""
    ctx.ensure_object(dict)
    ctx.obj["region"] = region
    ctx.obj["profile"] = profile
    if verbose:
        _enable_verbose_logging()


@cli.command("image-uri")
@click.argument("framework")
@click.option("-r", "--region", default=None, help="리전 (기본: 상위 --region 또는 설정)")
@click.option("--version", "version", default=None, help="프레임워크 버전")
@click.option("--py-version", default=None, help="Python 버전 (예: py3)")
@click.option("--instance-type", default=None, help="인스턴스 유형 (cpu/gpu 판별)")
@click.option("--scope", default=None, help="이미지 범위 (training, inference 등)")
@click.pass_context
def image_uri_command(
    ctx: Context,
    framework: str,
    region: str | None,
    version: str | None,
    py_version: str | None,
    instance_type: str | None,
    scope: str | None,
) -> None:
    """프레임워크 이미지 ECR URI 조회"""
    from smsdk import image_uris

    region = region or ctx.obj.get("region") or load_config().region
    uri = image_uris.retrieve(
        framework,
        region=region,
        version=version,
        py_version=py_version,
        instance_type=instance_type,
        image_scope=scope,
    )
    click.echo(uri)


@cli.command("describe")
@click.argument("target", type=click.Choice(DESCRIBE_TARGETS))
@click.argument("name")
@click.pass_context
def describe_command(ctx: Context, target: str, name: str) -> None:
    """작업/엔드포인트/모델 Describe 응답을 JSON으로 출력"""
    session = _get_session(ctx)
    describers = {
        "training": session.describe_training_job,
        "processing": session.describe_processing_job,
        "transform": session.describe_transform_job,
        "tuning": session.describe_tuning_job,
        "compilation": session.describe_compilation_job,
        "endpoint": session.describe_endpoint,
        "model": session.describe_model,
    }
    desc = describers[target](name)
    desc.pop("ResponseMetadata", None)
    console.print_json(data=desc, default=str)


@cli.command("wait")
@click.argument("target", type=click.Choice(WAIT_TARGETS))
@click.argument("name")
@click.option("--poll", type=int, default=None, help="폴링 간격 (초)")
@click.pass_context
def wait_command(ctx: Context, target: str, name: str, poll: int | None) -> None:
    """작업 종료 또는 엔드포인트 InService까지 대기"""
    session = _get_session(ctx)
    waiters = {
        "training": (session.wait_for_job, "TrainingJobStatus"),
        "processing": (session.wait_for_processing_job, "ProcessingJobStatus"),
        "transform": (session.wait_for_transform_job, "TransformJobStatus"),
        "tuning": (session.wait_for_tuning_job, "HyperParameterTuningJobStatus"),
        "compilation": (session.wait_for_compilation_job, "CompilationJobStatus"),
        "endpoint": (session.wait_for_endpoint, "EndpointStatus"),
    }
    waiter, status_key = waiters[target]
    desc = waiter(name, poll=poll)
    console.print(f"[green]{name}: {desc.get(status_key)}[/green]")


@cli.command("logs")
@click.argument("target", type=click.Choice(LOG_TARGETS))
@click.argument("name")
@click.option("-w", "--wait", is_flag=True, help="작업 종료까지 로그 tailing")
@click.pass_context
def logs_command(ctx: Context, target: str, name: str, wait: bool) -> None:
    """작업 CloudWatch 로그 출력"""
    session = _get_session(ctx)
    tailers = {
        "training": session.logs_for_job,
        "processing": session.logs_for_processing_job,
        "transform": session.logs_for_transform_job,
    }
    tailers[target](name, wait=wait)


@cli.command("stop")
@click.argument("target", type=click.Choice(STOP_TARGETS))
@click.argument("name")
@click.pass_context
def stop_command(ctx: Context, target: str, name: str) -> None:
    """실행 중인 작업 중지"""
    session = _get_session(ctx)
    stoppers = {
        "training": session.stop_training_job,
        "processing": session.stop_processing_job,
        "transform": session.stop_transform_job,
        "tuning": session.stop_tuning_job,
    }
    stoppers[target](name)
    console.print(f"[yellow]중지 요청: {name}[/yellow]")


@cli.group("config")
def config_group() -> None:
    """SDK 설정 조회"""


@config_group.command("show")
@click.option("-c", "--config", "config_path", default=None, help="설정 파일 경로")
def config_show(config_path: str | None) -> None:
    """적용되는 설정 파일과 값을 출력"""
    path = resolve_config_path(config_path)
    config: SDKConfig = load_config(config_path)

    console.print(f"[bold]설정 파일:[/bold] {path if path is not None else '(기본값)'}")
    console.print_json(data=dataclasses.asdict(config))


if __name__ == "__main__":
    cli()
