"""
项目统计服务 (Stats Service)
从场景列表与会话历史推导项目级总量，并提供按场景过滤的只读查询。
"""
from __future__ import annotations
from datetime import datetime
from typing import List

import pandas as pd

from core.schemas import Project, WritingSession


class StatsService:
    @staticmethod
    def sum_words(project: Project) -> int:
        return sum(scene.word_count for scene in project.scenes)

    @staticmethod
    def recalculate_total_words(project: Project) -> int:
        """场景内容或数量变化后重新计算 total_words"""
        project.total_words = StatsService.sum_words(project)
        return project.total_words

    @staticmethod
    def add_session_time(project: Project, duration_ms: int) -> int:
        # 会话不可删除或修改，因此总时长只做加法
        project.total_time += duration_ms
        return project.total_time

    @staticmethod
    def totals_consistent(project: Project) -> bool:
        return (
            project.total_words == StatsService.sum_words(project)
            and project.total_time == sum(s.duration for s in project.sessions)
        )

    @staticmethod
    def sessions_for_scene(project: Project, scene_id: str) -> List[WritingSession]:
        """某个场景的写作历史，最新的在前"""
        sessions = [s for s in project.sessions if s.snapshot.scene_id == scene_id]
        return sorted(sessions, key=lambda s: s.start_time or datetime.min, reverse=True)

    @staticmethod
    def time_on_scene(project: Project, scene_id: str) -> int:
        return sum(s.duration for s in project.sessions if s.snapshot.scene_id == scene_id)

    @staticmethod
    def session_count_for_scene(project: Project, scene_id: str) -> int:
        return sum(1 for s in project.sessions if s.snapshot.scene_id == scene_id)

    @staticmethod
    def project_summary(project: Project) -> dict:
        """统计面板所需的概要数据"""
        return {
            "total_words": project.total_words,
            "total_scenes": len(project.scenes),
            "total_time": format_time(project.total_time),
            "total_sessions": len(project.sessions),
        }

    @staticmethod
    def daily_progress(project: Project) -> pd.DataFrame:
        """
        按自然日汇总写作进度。

        Returns:
            pd.DataFrame: 列为 date / sessions / words_written / minutes，按日期升序。
        """
        columns = ["date", "sessions", "words_written", "minutes"]
        # 缺少开始时间的旧记录无法归到某一天
        dated = [s for s in project.sessions if s.start_time is not None]
        if not dated:
            return pd.DataFrame(columns=columns)

        df = pd.DataFrame([
            {
                "date": s.start_time.date(),
                "words_written": s.words_written,
                "duration": s.duration,
            } for s in dated
        ])
        daily = df.groupby("date").agg(
            sessions=("duration", "size"),
            words_written=("words_written", "sum"),
            duration=("duration", "sum"),
        ).reset_index()
        daily["minutes"] = (daily["duration"] / 60000).round(1)
        return daily[columns].sort_values("date").reset_index(drop=True)


def format_time(ms: int) -> str:
    """毫秒格式化为 M:SS 或 H:MM:SS"""
    total_seconds = int(ms // 1000)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"
