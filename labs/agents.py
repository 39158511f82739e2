import re
from labs.base import Lab
from module_models import ModuleInput, ModuleOutput
from providers.base import GenerateOptions

WORKFLOW_STEP = re.compile(r"^\d+\.\s+.+$", re.MULTILINE)
INSIGHT = re.compile(r"(?:insight|key point|takeaway):\s*(.+)", re.IGNORECASE)
SCRIPT_BOUNDARY = re.compile(r"(?=Script \d+:|Option \d+:|Template \d+:)", re.IGNORECASE)

class OpalLab(Lab):
    id = "opal"
    name = "Opal"
    description = "Lightweight reasoning agent for fast, efficient responses"
    type = "text"
    icon = "fa-gem"
    template_id = "opal_reasoning"
    capabilities = ["reasoning", "quick-response", "task-execution"]
    config = {"model": "gemini-2.0-flash", "max_tokens": 1024, "temperature": 0.5}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        prompt = self.templates.render(self.template_id, {"input": input.content, "context": input.context})
        response = await self.provider.generate_text(prompt, GenerateOptions(**self.config))
        return ModuleOutput(content=response, type="text")

class StitchLab(Lab):
    id = "stitch"
    name = "Stitch"
    description = "Real-time multimodal agent with streaming responses"
    type = "multimodal"
    icon = "fa-bolt-lightning"
    template_id = "stitch_multimodal"
    capabilities = ["multimodal", "streaming", "real-time", "complex-reasoning"]
    config = {"model": "gemini-2.5-flash-preview-05-20", "use_thinking": True}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        prompt = self.templates.render(self.template_id, {"input": input.content, "context": input.context})
        response = await self.provider.generate_with_thinking(prompt)
        return ModuleOutput(
            content=response,
            type="text",
            metadata={"model": self.config["model"], "used_thinking": True},
        )

class WhiskLab(Lab):
    id = "whisk"
    name = "Whisk"
    description = "Automation agent for workflow execution and task chaining"
    type = "text"
    icon = "fa-wand-magic-sparkles"
    template_id = "whisk_automation"
    capabilities = ["automation", "workflow", "task-chaining", "process-optimization"]
    config = {"model": "gemini-2.0-flash", "max_tokens": 2048, "temperature": 0.6}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        prompt = self.templates.render(self.template_id, {"input": input.content, "context": input.context})
        response = await self.provider.generate_text(prompt, GenerateOptions(**self.config))
        return ModuleOutput(
            content=response,
            type="json",
            data={"workflow": WORKFLOW_STEP.findall(response), "raw_response": response},
        )

class NotebookLMLab(Lab):
    id = "notebooklm"
    name = "NotebookLM"
    description = "Context ingestion, summarization, and long memory handling"
    type = "text"
    icon = "fa-book-open"
    template_id = "notebooklm_synthesis"
    capabilities = ["summarization", "synthesis", "context-ingestion", "long-memory"]
    config = {"model": "gemini-2.5-flash-preview-05-20", "max_tokens": 4096, "use_thinking": True}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        prompt = self.templates.render(self.template_id, {"input": input.content, "context": input.context})
        response = await self.provider.generate_with_thinking(prompt)
        insights = [match.strip() for match in INSIGHT.findall(response)]
        return ModuleOutput(content=response, type="json", data={"synthesis": response, "insights": insights})

class MarinerLab(Lab):
    """검색 grounding 후 리서치 리포트 합성"""

    id = "mariner"
    name = "Project Mariner"
    description = "Research agent with web search and report generation"
    type = "text"
    icon = "fa-compass"
    template_id = "mariner_research"
    capabilities = ["research", "web-search", "analysis", "report-generation"]
    config = {"model": "gemini-2.0-flash", "use_search": True}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        search = await self.provider.search(input.content)
        prompt = self.templates.render(self.template_id, {
            "input": input.content,
            "context": f"Search results:\n{search.text}\n\nPrevious research:\n{input.context}",
        })
        report = await self.provider.generate_with_thinking(prompt)
        return ModuleOutput(
            content=report,
            type="json",
            data={"report": report, "sources": search.sources, "query": input.content},
        )

class HelpMeScriptLab(Lab):
    id = "helpme-script"
    name = "Help Me Script"
    description = "Script generator with tone control and reusable templates"
    type = "text"
    icon = "fa-file-code"
    template_id = "helpme_script"
    capabilities = ["script-generation", "tone-control", "templates", "boundary-setting"]
    config = {"model": "gemini-2.0-flash", "max_tokens": 2048, "temperature": 0.7}

    async def execute(self, input: ModuleInput) -> ModuleOutput:
        tone = self.option(input, "tone", "professional")
        prompt = self.templates.render(self.template_id, {"input": input.content, "tone": tone})
        response = await self.provider.generate_text(prompt, GenerateOptions(**self.config))
        scripts = [s.strip() for s in SCRIPT_BOUNDARY.split(response) if s.strip()]
        return ModuleOutput(
            content=response,
            type="json",
            data={"scripts": scripts, "tone": tone, "count": len(scripts)},
        )
