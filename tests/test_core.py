#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
核心功能模块测试
"""

import unittest
from unittest import mock

import requests

from nightgard_ddns import core
from nightgard_ddns.core import (
    DUCKDNS_UPDATE_URL,
    IP_SERVICES,
    get_public_ip,
    update_duckdns
)


def make_response(body, status_code=200):
    """构造一个 requests.Response"""
    response = requests.Response()
    response.status_code = status_code
    response._content = body if isinstance(body, bytes) else body.encode('utf-8')
    return response


class TestGetPublicIp(unittest.TestCase):
    """公网IP检测测试类"""

    def test_first_service_wins(self):
        """测试第一个服务成功时不再请求其他服务"""
        with mock.patch.object(core.requests, 'get', return_value=make_response("1.2.3.4\n")) as get:
            self.assertEqual(get_public_ip(), "1.2.3.4")
        get.assert_called_once_with(IP_SERVICES[0], timeout=core.REQUEST_TIMEOUT)

    def test_falls_back_in_order(self):
        """测试第一个服务失败后使用第二个，第三个不被请求"""
        responses = [
            requests.ConnectionError("down"),
            make_response("  9.9.9.9  "),
            make_response("7.7.7.7"),
        ]
        with mock.patch.object(core.requests, 'get', side_effect=responses) as get:
            self.assertEqual(get_public_ip(), "9.9.9.9")
        self.assertEqual(
            [c.args[0] for c in get.call_args_list],
            IP_SERVICES[:2]
        )

    def test_http_error_advances(self):
        """测试非 2xx 响应视为失败"""
        responses = [make_response("oops", 503), make_response("5.6.7.8")]
        with mock.patch.object(core.requests, 'get', side_effect=responses):
            self.assertEqual(get_public_ip(), "5.6.7.8")

    def test_empty_or_undecodable_body_advances(self):
        """测试空内容和非 UTF-8 内容视为失败"""
        responses = [make_response("   \n"), make_response(b"\xff\xfe"), make_response("8.8.4.4")]
        with mock.patch.object(core.requests, 'get', side_effect=responses):
            self.assertEqual(get_public_ip(), "8.8.4.4")

    def test_body_is_not_validated(self):
        """测试返回内容不做格式校验"""
        with mock.patch.object(core.requests, 'get', return_value=make_response("not-an-ip")):
            self.assertEqual(get_public_ip(), "not-an-ip")

    def test_all_services_fail(self):
        """测试所有服务失败时返回 None，每个服务只请求一次"""
        with mock.patch.object(core.requests, 'get', side_effect=requests.Timeout("slow")) as get:
            self.assertIsNone(get_public_ip())
        self.assertEqual(get.call_count, len(IP_SERVICES))

    def test_custom_services(self):
        """测试自定义服务列表"""
        services = ['https://a.example', 'https://b.example']
        with mock.patch.object(core.requests, 'get', return_value=make_response("1.1.1.1")) as get:
            self.assertEqual(get_public_ip(services=services, timeout=3), "1.1.1.1")
        get.assert_called_once_with('https://a.example', timeout=3)

    def test_empty_services(self):
        """测试显式传入空列表时不使用默认服务"""
        with mock.patch.object(core.requests, 'get') as get:
            self.assertIsNone(get_public_ip(services=[]))
        get.assert_not_called()


class TestUpdateDuckdns(unittest.TestCase):
    """DuckDNS 更新测试类"""

    def test_ok_response(self):
        """测试返回 OK 视为成功"""
        with mock.patch.object(core.requests, 'get', return_value=make_response("OK\n")) as get:
            self.assertTrue(update_duckdns("home", "secret", "5.6.7.8"))
        get.assert_called_once_with(
            DUCKDNS_UPDATE_URL,
            params={'domains': "home", 'token': "secret", 'ip': "5.6.7.8"},
            timeout=core.REQUEST_TIMEOUT
        )

    def test_ko_response(self):
        """测试返回其他内容视为失败"""
        for body in ("KO", "ok", "OK then", ""):
            with self.subTest(body=body):
                with mock.patch.object(core.requests, 'get', return_value=make_response(body)):
                    self.assertFalse(update_duckdns("home", "secret", "5.6.7.8"))

    def test_transport_error(self):
        """测试网络错误视为失败且不抛出异常"""
        with mock.patch.object(core.requests, 'get', side_effect=requests.ConnectionError("down")) as get:
            self.assertFalse(update_duckdns("home", "secret", "5.6.7.8"))
        get.assert_called_once()

    def test_token_not_logged(self):
        """测试日志中不出现令牌"""
        error = requests.ConnectionError("GET https://www.duckdns.org/update?token=secret failed")
        with mock.patch.object(core.requests, 'get', side_effect=error):
            with self.assertLogs('nightgard_ddns', level='ERROR') as logs:
                update_duckdns("home", "secret", "5.6.7.8")
        self.assertNotIn("secret", "\n".join(logs.output))


if __name__ == '__main__':
    unittest.main()
