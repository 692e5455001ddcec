"""
Interview prompt templates.

This module contains all the text the wizard says, keeping it separate from
the stage logic for easier maintenance and editing.
"""
from typing import List, Optional

from .models import SOPDocument, StepDraft
from .schemas import Stage


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    @staticmethod
    def greeting() -> str:
        """Opening message shown when the wizard opens."""
        return ("👋 Hi there! I'm your SOP Assistant. I'll help you create a detailed "
                "Standard Operating Procedure through a simple conversation. "
                "Let's make this easy! Ready to start?")

    @staticmethod
    def ask_title() -> str:
        return ("Great! Let's get started. What would you like to title this SOP? "
                "Pick something clear and descriptive that people can easily search for.")

    @staticmethod
    def ask_description(title: str) -> str:
        return (f"\"{title}\" is a good title. Now, please provide a brief description "
                "of what this SOP covers. What's the purpose of this procedure?")

    @staticmethod
    def ask_category() -> str:
        return ("Thanks for that description. What category would you place this SOP in? "
                "For example: HR, IT, Finance, Operations, Customer Service, etc.")

    @staticmethod
    def ask_stakeholders(category: str) -> str:
        return (f"Great, filed under {category}. Now, who are the key stakeholders or "
                "teams that should follow this procedure?")

    @staticmethod
    def ask_first_step() -> str:
        return ("Perfect. Let's start breaking down the steps of this procedure. "
                "What's the first step someone should take?")

    @staticmethod
    def step_added(steps: List[StepDraft], title: Optional[str]) -> str:
        """Acknowledge a new step and ask for the next one."""
        count = len(steps)
        if count == 1:
            reply = ("I've added that as your first step. What's the next step in this "
                     "procedure? Or say 'done' if that's the only step needed.")
        elif count <= 3:
            reply = f"Step {count} added. What comes next? Or say 'done' if you've completed all the steps."
        else:
            reply = f"I've recorded that as step {count}. What follows this step? Say 'done' if that's all."

        texts = [step.text.lower() for step in steps]
        if count == 3 and not any("verify" in t or "check" in t for t in texts):
            reply += " Consider adding verification steps to ensure quality control."
        elif count == 4 and "safety" not in (title or "").lower() and not any("safety" in t for t in texts):
            reply += " Don't forget to include any relevant safety precautions if applicable."
        return reply

    @staticmethod
    def finalize_summary(document: SOPDocument, steps: List[StepDraft]) -> str:
        """Recap of everything captured, shown on entering the finalize stage."""
        count = len(steps)
        lines = [
            f"Great! I've recorded {count} step{'s' if count != 1 else ''}. "
            "Let's review what we have so far before finalizing.",
            "",
            f"Title: {document.title or '(none)'}",
            f"Description: {document.description or '(none)'}",
            f"Category: {document.category or '(none)'}",
            f"Stakeholders: {document.stakeholders or '(none)'}",
            "Steps:",
        ]
        if steps:
            lines.extend(f"  {step.sequence_number}. {step.text}" for step in steps)
        else:
            lines.append("  (no steps recorded)")
        lines.append("")
        lines.append("Reply with anything to save this SOP.")
        return "\n".join(lines)

    @staticmethod
    def completed(title: Optional[str]) -> str:
        name = f" \"{title}\"" if title else ""
        return (f"Your SOP{name} has been created successfully! You can now edit it "
                "further or share it with your team.")

    @staticmethod
    def turn_error() -> str:
        return "I encountered an error, please try again."

    @staticmethod
    def help(stage: Stage) -> str:
        """Contextual help for the current stage."""
        if stage is Stage.INTRO:
            return ("I'm here to help you create a Standard Operating Procedure (SOP). "
                    "I'll guide you through this step-by-step, asking for a title, "
                    "description, steps, and more. Ready to get started?")
        if stage is Stage.TITLE:
            return ("I need a clear title for your SOP. This should briefly describe the "
                    "process or procedure you're documenting. For example: 'Customer "
                    "Complaint Handling Process' or 'Server Backup Procedure'.")
        if stage is Stage.DESCRIPTION:
            return ("Please provide a brief description of this procedure. Explain its "
                    "purpose, when it should be used, and why it's important.")
        if stage is Stage.CATEGORY:
            return ("Pick the area of the business this SOP belongs to, such as HR, IT, "
                    "Finance, Operations, Safety or Quality Control.")
        if stage is Stage.STAKEHOLDERS:
            return ("List the roles or individuals who perform, supervise, or approve "
                    "this process.")
        if stage is Stage.STEPS:
            return ("Describe one step at a time, in the order they are performed. "
                    "Say 'done' when you've added every step.")
        return ("I'm here to help you create your SOP. Continue providing information "
                "for the current step.")

    @staticmethod
    def example_answer(stage: Stage) -> str:
        """A sample answer that shows what kind of input a stage expects."""
        examples = {
            Stage.TITLE: "Equipment Shutdown Procedure",
            Stage.DESCRIPTION: ("This procedure outlines the proper steps to safely shut down "
                                "laboratory equipment at the end of each work day."),
            Stage.CATEGORY: "Laboratory Safety",
            Stage.STAKEHOLDERS: ("Lab Technicians perform the shutdown and the Lab Manager "
                                 "approves the procedure."),
            Stage.STEPS: "Verify all components are properly assembled and tested before packaging.",
        }
        return examples.get(stage, "I'd like to create a standard operating procedure for equipment shutdown.")
