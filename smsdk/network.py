"""
smsdk/network.py - 처리/모니터링 작업용 NetworkConfig
"""

from __future__ import annotations

from typing import Any

from smsdk import vpc_utils


class NetworkConfig:
    """처리 작업의 네트워크 격리, 컨테이너 간 트래픽 암호화, VPC 설정

    Attributes:
        enable_network_isolation: 컨테이너 외부 네트워크 차단 여부
        security_group_ids: 보안 그룹 ID 목록
        subnets: 서브넷 ID 목록
        encrypt_inter_container_traffic: 컨테이너 간 트래픽 암호화 여부
    """

    def __init__(
        self,
        enable_network_isolation: bool = False,
        security_group_ids: list[str] | None = None,
        subnets: list[str] | None = None,
        encrypt_inter_container_traffic: bool | None = None,
    ):
        self.enable_network_isolation = enable_network_isolation
        self.security_group_ids = security_group_ids
        self.subnets = subnets
        self.encrypt_inter_container_traffic = encrypt_inter_container_traffic

    def _to_request_dict(self) -> dict[str, Any]:
        """NetworkConfig 요청 딕셔너리 생성"""
        network_config_request: dict[str, Any] = {"EnableNetworkIsolation": self.enable_network_isolation}

        if self.encrypt_inter_container_traffic is not None:
            network_config_request["EnableInterContainerTrafficEncryption"] = self.encrypt_inter_container_traffic

        if self.security_group_ids is not None or self.subnets is not None:
            network_config_request[vpc_utils.VPC_CONFIG_KEY] = {
                vpc_utils.SECURITY_GROUP_IDS_KEY: self.security_group_ids,
                vpc_utils.SUBNETS_KEY: self.subnets,
            }

        return network_config_request

    @classmethod
    def from_request_dict(cls, request: dict[str, Any] | None) -> NetworkConfig | None:
        """Describe 응답의 NetworkConfig로부터 복원"""
        if not request:
            return None
        vpc_config = request.get(vpc_utils.VPC_CONFIG_KEY) or {}
        return cls(
            enable_network_isolation=request.get("EnableNetworkIsolation", False),
            security_group_ids=vpc_config.get(vpc_utils.SECURITY_GROUP_IDS_KEY),
            subnets=vpc_config.get(vpc_utils.SUBNETS_KEY),
            encrypt_inter_container_traffic=request.get("EnableInterContainerTrafficEncryption"),
        )
