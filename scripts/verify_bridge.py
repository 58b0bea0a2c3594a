import asyncio
import sys
import os

# Add the project root to sys.path
sys.path.append(os.getcwd())

from src.bridge.client import LocalAssistant
from src.bridge.processor import CommandProcessor
from src.bridge.schemas import Command, Failure
from src.bridge.service import BridgeService


# Mock environment: pretend VS Code and the Copilot extension are installed
class MockProbe:
    async def ide_present(self):
        return True

    async def extension_present(self):
        return True


async def run_bridge_test():
    print("\n--- Testing Copilot Bridge ---")
    processor = CommandProcessor(BridgeService(probe=MockProbe(), assistant=LocalAssistant()))

    steps = [
        ("status", {}),
        ("chat", {"message": "Hello before auth"}),
        ("initialize", {}),
        ("authenticate", {"token": "dev-token"}),
        ("chat", {"message": "Explain TStringList", "context": "Unit1.pas"}),
        ("completion", {"code": "procedure TForm1.Button1Click(Sender: TObject);", "language": "pascal"}),
        ("signout", {}),
        ("status", {}),
        ("bogus", {}),
    ]

    try:
        for i, (name, params) in enumerate(steps, start=1):
            print(f"{i}. Testing '{name}' command...")
            response = await processor.process(Command(name=name, params=params))
            marker = "⚠️" if isinstance(response, Failure) else "✅"
            print(f"{marker} Result: {response.to_output()}")
    except Exception as e:
        print(f"❌ ERROR: {e}")
    finally:
        await processor.close()


if __name__ == "__main__":
    try:
        asyncio.run(run_bridge_test())
    except KeyboardInterrupt:
        pass
