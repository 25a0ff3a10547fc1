"""
smsdk/model_monitor/cron_expression_generator.py - 모니터링 스케줄 cron 표현식
"""


class CronExpressionGenerator:
    """CreateMonitoringSchedule의 ScheduleExpression 생성"""

    @staticmethod
    def hourly() -> str:
        return "cron(0 * ? * * *)"

    @staticmethod
    def daily(hour: int = 0) -> str:
        """매일 hour시 (UTC)"""
        return f"cron(0 {hour} ? * * *)"

    @staticmethod
    def daily_every_x_hours(hour_interval: int, starting_hour: int = 0) -> str:
        """starting_hour부터 hour_interval시간마다"""
        return f"cron(0 {starting_hour}/{hour_interval} ? * * *)"
