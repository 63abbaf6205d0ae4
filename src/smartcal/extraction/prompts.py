# Prompt template for AI-assisted event extraction.
# Created: 2026-10-03
#
# Placeholders: {conversation}. Literal braces in the JSON example are
# doubled so the template works with str.format().

EXTRACTION_PROMPT = """\
请从以下对话内容中提取所有事件信息，包括日期、时间、事件名称等。返回JSON格式：

{conversation}

返回格式示例：
{{
  "events": [
    {{
      "title": "事件标题",
      "startDate": "2024-01-25T14:00:00",
      "endDate": "2024-01-25T15:00:00",
      "description": "事件描述",
      "priority": "high",
      "type": "meeting"
    }}
  ],
  "confidence": 0.95
}}"""
