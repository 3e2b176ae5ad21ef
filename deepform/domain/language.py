"""Interview languages and the localized strings the backend renders itself."""

from dataclasses import dataclass
from typing import Literal

Lang = Literal["ja", "en", "es", "zh"]

DEFAULT_LANG: Lang = "ja"

QUALITY_KEYS: tuple[str, ...] = (
    "functionalSuitability",
    "performanceEfficiency",
    "compatibility",
    "usability",
    "reliability",
    "security",
    "maintainability",
    "portability",
)


@dataclass(frozen=True)
class LangPack:
    lang_name: str
    other_choice: str
    start_message: str  # formatted with {theme}
    already_started: str
    respondent_label: str
    interviewer_label: str
    anonymous: str
    quality_labels: dict[str, str]
    prd_headings: dict[str, str]
    implementation_constraints: tuple[str, ...]


_PACKS: dict[str, LangPack] = {
    "ja": LangPack(
        lang_name="日本語",
        other_choice="その他（自分で入力）",
        start_message="テーマ「{theme}」についてインタビューを始めてください。",
        already_started="インタビューは既に開始されています。",
        respondent_label="回答者",
        interviewer_label="インタビュアー",
        anonymous="匿名",
        quality_labels={
            "functionalSuitability": "機能適合性",
            "performanceEfficiency": "性能効率性",
            "compatibility": "互換性",
            "usability": "使用性",
            "reliability": "信頼性",
            "security": "セキュリティ",
            "maintainability": "保守性",
            "portability": "移植性",
        },
        prd_headings={
            "problem": "問題定義",
            "target_user": "対象ユーザー",
            "jobs": "Jobs to be Done",
            "features": "コア機能（MVP）",
            "priority": "優先度",
            "acceptance": "受け入れ基準",
            "edge_cases": "エッジケース",
            "non_goals": "Non-Goals（やらないこと）",
            "flows": "ユーザーフロー",
            "quality": "非機能要件（ISO/IEC 25010）",
            "metrics": "計測指標",
            "metric_columns": "指標|定義|目標",
            "constraints": "実装制約",
            "constraints_intro": "この PRD を実装する際、以下のルールを必ず遵守すること。",
        },
        implementation_constraints=(
            "モックデータ、ハードコードされた配列、スタブ API での実装は完了とみなさない",
            "すべてのデータは実際の DB/API から取得・保存すること",
            "バックエンド API が未実装の場合、UI より先にバックエンドの最小実装を作ること",
            "未実装の機能は UI 上で明示的に「未実装」と表示すること",
        ),
    ),
    "en": LangPack(
        lang_name="English",
        other_choice="Other (type your own)",
        start_message='Please start the interview about: "{theme}"',
        already_started="Interview has already started.",
        respondent_label="Respondent",
        interviewer_label="Interviewer",
        anonymous="Anonymous",
        quality_labels={
            "functionalSuitability": "Functional Suitability",
            "performanceEfficiency": "Performance Efficiency",
            "compatibility": "Compatibility",
            "usability": "Usability",
            "reliability": "Reliability",
            "security": "Security",
            "maintainability": "Maintainability",
            "portability": "Portability",
        },
        prd_headings={
            "problem": "Problem Definition",
            "target_user": "Target User",
            "jobs": "Jobs to be Done",
            "features": "Core Features (MVP)",
            "priority": "Priority",
            "acceptance": "Acceptance Criteria",
            "edge_cases": "Edge Cases",
            "non_goals": "Non-Goals",
            "flows": "User Flows",
            "quality": "Quality Requirements (ISO/IEC 25010)",
            "metrics": "Metrics",
            "metric_columns": "Metric|Definition|Target",
            "constraints": "Implementation Constraints",
            "constraints_intro": "Follow these rules when implementing this PRD.",
        },
        implementation_constraints=(
            "Mock data, hard-coded arrays and stub APIs do not count as done",
            "All data must be read from and written to a real DB/API",
            "If the backend API is missing, build a minimal real backend before the UI",
            'Mark unfinished features as "Not implemented" in the UI',
        ),
    ),
    "es": LangPack(
        lang_name="español",
        other_choice="Otro (escribir)",
        start_message='Por favor, comienza la entrevista sobre: "{theme}"',
        already_started="La entrevista ya ha comenzado.",
        respondent_label="Entrevistado",
        interviewer_label="Entrevistador",
        anonymous="Anónimo",
        quality_labels={
            "functionalSuitability": "Adecuación funcional",
            "performanceEfficiency": "Eficiencia de desempeño",
            "compatibility": "Compatibilidad",
            "usability": "Usabilidad",
            "reliability": "Fiabilidad",
            "security": "Seguridad",
            "maintainability": "Mantenibilidad",
            "portability": "Portabilidad",
        },
        prd_headings={
            "problem": "Definición del problema",
            "target_user": "Usuario objetivo",
            "jobs": "Jobs to be Done",
            "features": "Funcionalidades clave (MVP)",
            "priority": "Prioridad",
            "acceptance": "Criterios de aceptación",
            "edge_cases": "Casos límite",
            "non_goals": "Fuera de alcance",
            "flows": "Flujos de usuario",
            "quality": "Requisitos de calidad (ISO/IEC 25010)",
            "metrics": "Métricas",
            "metric_columns": "Métrica|Definición|Objetivo",
            "constraints": "Restricciones de implementación",
            "constraints_intro": "Sigue estas reglas al implementar este PRD.",
        },
        implementation_constraints=(
            "Los datos simulados, arrays fijos y APIs stub no cuentan como terminado",
            "Todos los datos deben leerse y guardarse en una BD/API real",
            "Si falta la API del backend, construye un backend mínimo real antes de la UI",
            'Marca las funciones sin terminar como "No implementado" en la UI',
        ),
    ),
    "zh": LangPack(
        lang_name="中文",
        other_choice="其他（自己输入）",
        start_message="请开始关于“{theme}”的访谈。",
        already_started="访谈已经开始。",
        respondent_label="受访者",
        interviewer_label="访谈者",
        anonymous="匿名",
        quality_labels={
            "functionalSuitability": "功能适合性",
            "performanceEfficiency": "性能效率",
            "compatibility": "兼容性",
            "usability": "易用性",
            "reliability": "可靠性",
            "security": "安全性",
            "maintainability": "可维护性",
            "portability": "可移植性",
        },
        prd_headings={
            "problem": "问题定义",
            "target_user": "目标用户",
            "jobs": "Jobs to be Done",
            "features": "核心功能（MVP）",
            "priority": "优先级",
            "acceptance": "验收标准",
            "edge_cases": "边界情况",
            "non_goals": "非目标",
            "flows": "用户流程",
            "quality": "质量要求（ISO/IEC 25010）",
            "metrics": "指标",
            "metric_columns": "指标|定义|目标",
            "constraints": "实现约束",
            "constraints_intro": "实现此 PRD 时必须遵守以下规则。",
        },
        implementation_constraints=(
            "使用模拟数据、硬编码数组或桩 API 的实现不算完成",
            "所有数据必须从真实的数据库/API 读取和保存",
            "如果后端 API 未实现，先于 UI 构建最小的真实后端",
            "未完成的功能必须在 UI 中明确标注“未实现”",
        ),
    ),
}


def resolve_lang(raw: str | None) -> Lang:
    """Map a client-supplied language code to a supported one, defaulting to Japanese."""
    if raw in ("en", "es", "zh"):
        return raw
    return DEFAULT_LANG


def lang_pack(lang: str | None) -> LangPack:
    return _PACKS[resolve_lang(lang)]
